import logging
import os

import uvicorn

if __name__ == "__main__":
    logging.basicConfig(
        level=os.environ.get("GROWTH_LOG_LEVEL", "INFO"),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    logger = logging.getLogger("run_server")

    logger.info("Starting Growth Engine API server...")
    logger.info("Docs available at: http://localhost:8000/docs")

    uvicorn.run(
        "growth_engine.api.server:app",
        host="0.0.0.0",
        port=int(os.environ.get("GROWTH_PORT", "8000")),
        reload=True
    )

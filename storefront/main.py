# storefront/main.py
import uvicorn

from storefront.api import create_app
from storefront.data.database import Base, engine, init_db
from storefront.data.seed import seed
from storefront.utils.settings import SEED_DEMO_DATA
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

logger.info("Initializing database...")
try:
    init_db(engine)
    logger.info(f"Tables ready: {list(Base.metadata.tables.keys())}")
except Exception as e:
    logger.error(f"Failed to create tables: {e}")
    raise

if SEED_DEMO_DATA:
    seed()

app = create_app()

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)

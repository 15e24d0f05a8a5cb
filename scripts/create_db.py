import logging
import os

from dotenv import find_dotenv, load_dotenv
from sqlalchemy import create_engine

from app.database import init_db

load_dotenv(find_dotenv())

logging.basicConfig(level=logging.INFO, format="%(levelname)s | %(message)s")
logger = logging.getLogger("turnover.create_db")


# Point d'entrée du script : crée le schéma hr et ses tables
def main():
    db_url = os.getenv("DATABASE_URL")
    if not db_url:
        raise RuntimeError("DATABASE_URL manquant dans .env")

    engine = create_engine(db_url, pool_pre_ping=True)
    if db_url.startswith("sqlite"):
        engine = engine.execution_options(schema_translate_map={"hr": None})

    init_db(engine)
    logger.info("Schéma hr + tables créés / vérifiés")


if __name__ == "__main__":
    main()

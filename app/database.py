"""
Connexion à la base RH lue par le moteur de risque de départ.

Ce module centralise :
- la lecture de DATABASE_URL (fichier `.env` hors tests),
- l'engine SQLAlchemy et la fabrique de sessions,
- la dépendance FastAPI `get_db`,
- `init_db()` qui crée les tables `hr.*` si elles n'existent pas.

En tests (pytest définit `PYTEST_CURRENT_TEST`), le `.env` n'est pas chargé :
les fixtures fournissent leur propre base SQLite en mémoire.
"""
from __future__ import annotations

import os
from typing import Generator

from dotenv import find_dotenv, load_dotenv
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

if "PYTEST_CURRENT_TEST" not in os.environ:
    load_dotenv(find_dotenv())

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+pysqlite:///:memory:")

_is_sqlite = DATABASE_URL.startswith("sqlite")

# SQLite n'a pas de schémas nommés : `hr.*` est alors ramené au schéma par défaut
engine = create_engine(
    DATABASE_URL,
    pool_pre_ping=True,
    connect_args={"check_same_thread": False} if _is_sqlite else {},
).execution_options(schema_translate_map={"hr": None} if _is_sqlite else {})

SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)


def get_db() -> Generator[Session, None, None]:
    """
    Fournit une session à un endpoint FastAPI (`Depends(get_db)`),
    fermée après la requête même en cas d'erreur.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine = engine) -> None:
    """Crée le schéma `hr` (PostgreSQL) puis les tables manquantes."""
    from app.models import Base, HR_SCHEMA

    with bind.begin() as conn:
        if conn.dialect.name == "postgresql":
            conn.execute(text(f"CREATE SCHEMA IF NOT EXISTS {HR_SCHEMA}"))
        Base.metadata.create_all(conn)

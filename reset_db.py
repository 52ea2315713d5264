import asyncio
import os
import sys

# Ajoute backend/ au PYTHONPATH pour importer orbital.*
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "backend"))

from orbital.core.config import get_settings
from orbital.core.database import Database


async def reset():
    database = Database.from_settings(get_settings())
    print("Connexion à la base de données, suppression des tables...")
    try:
        await database.drop_all()
        print("Tables supprimées. Création des nouvelles tables...")
        await database.create_all()
    finally:
        await database.dispose()
    print("Base de données réinitialisée avec succès !")


if __name__ == "__main__":
    asyncio.run(reset())

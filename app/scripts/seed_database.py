# app/scripts/seed_database.py
"""
Populate an empty database with staff accounts and ten tables.

Starting balances are awarded through the points service so every table's
balance is backed by ledger entries from the first row.

    python -m app.scripts.seed_database
"""
import asyncio
import logging

from sqlalchemy import select

from app.core.db import AsyncSessionLocal, init_models
from app.core.logging_config import setup_logging
from app.models.table_models import LoyaltyTable
from app.models.transaction_models import TransactionType
from app.models.user_models import User
from app.schemas.user_schemas import UserCreate
from app.services import points_service, table_service, user_service
from app.utils.request_context import RequestContext

logger = logging.getLogger(__name__)

SEED_USERS = [
    {"username": "admin", "email": "admin@qrtavoli.com", "password": "admin123",
     "first_name": "Admin", "last_name": "Sistema", "role": "admin"},
    {"username": "cassiere1", "email": "cassiere1@qrtavoli.com", "password": "cassiere123",
     "first_name": "Mario", "last_name": "Rossi", "role": "cashier"},
    {"username": "cassiere2", "email": "cassiere2@qrtavoli.com", "password": "cassiere123",
     "first_name": "Giulia", "last_name": "Bianchi", "role": "cashier"},
]

SEED_TABLES = [
    (1, "Tavolo 1", "Sala principale", 4, 85),
    (2, "Tavolo VIP", "Zona riservata", 6, 92),
    (3, "Tavolo 3", "Sala principale", 4, 34),
    (4, "Tavolo Famiglia", "Zona bambini", 8, 67),
    (5, "Tavolo 5", "Sala principale", 2, 23),
    (6, "Tavolo Terrazza", "Terrazza esterna", 4, 78),
    (7, "Tavolo 7", "Sala principale", 4, 45),
    (8, "Tavolo Romantico", "Zona intima", 2, 56),
    (9, "Tavolo 9", "Sala principale", 6, 89),
    (10, "Tavolo Giardino", "Giardino", 4, 41),
]


async def seed():
    await init_models()
    async with AsyncSessionLocal() as db:
        if (await db.execute(select(User.id).limit(1))).first():
            logger.info("Users already present, skipping seed")
            return

        users = [await user_service.create_user(db, UserCreate(**data)) for data in SEED_USERS]
        admin = users[0]
        ctx = RequestContext(user=admin, user_agent="seed-script", ip_address="127.0.0.1")

        for number, name, location, capacity, points in SEED_TABLES:
            table = await table_service.create_table(
                db, number, name=name, location=location, capacity=capacity, created_by=admin.id
            )
            # awards are capped per transaction, so split the starting balance
            remaining = points
            while remaining > 0:
                chunk = min(remaining, 50)
                await points_service.award(db, table.qr_code, chunk, "Initial balance", ctx, TransactionType.BONUS)
                remaining -= chunk

        total = (await db.execute(select(LoyaltyTable.id))).all()
        logger.info(f"Seeded {len(users)} users and {len(total)} tables")


if __name__ == "__main__":
    setup_logging()
    asyncio.run(seed())

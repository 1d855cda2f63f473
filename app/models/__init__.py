# app/models/__init__.py
from app.models.user_models import User, RefreshToken
from app.models.activity_models import UserActivity
from app.models.table_models import LoyaltyTable
from app.models.transaction_models import PointTransaction, TransactionType

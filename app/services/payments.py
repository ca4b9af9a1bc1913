# app/services/payments.py
# Заглушка платёжного процессора.
# ВНИМАНИЕ: реальный платёжный шлюз не подключён. FakePaymentProcessor всегда
# «проводит» платёж синхронно и выдумывает transaction_id — это не production-оплата.

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal

from app.models.payment import PaymentMethod, PaymentStatus

logger = logging.getLogger(__name__)

FAKE_TRANSACTION_PREFIX = "FAKE_"


def generate_transaction_id() -> str:
    """FAKE_ + 16 символов верхнего регистра из hex."""
    return FAKE_TRANSACTION_PREFIX + uuid.uuid4().hex[:16].upper()


@dataclass(frozen=True)
class ChargeResult:
    status: PaymentStatus
    transaction_id: str | None


class FakePaymentProcessor:
    """Синхронный, всегда успешный процессор-заглушка."""

    def charge(
        self,
        amount: Decimal,
        method: PaymentMethod,
        card_last_four_digits: str | None = None,
    ) -> ChargeResult:
        transaction_id = generate_transaction_id()
        logger.warning(
            f"⚠️ Stand-in payment processor used: {method.value} charge of {amount} "
            f"marked completed as {transaction_id}, no real gateway involved"
        )
        return ChargeResult(status=PaymentStatus.completed, transaction_id=transaction_id)

    def refund(self, transaction_id: str | None, amount: Decimal) -> PaymentStatus:
        logger.warning(f"⚠️ Stand-in payment processor refund of {amount} for {transaction_id}")
        return PaymentStatus.refunded

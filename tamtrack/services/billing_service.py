"""Model-pack purchases.

The payment provider is reached through a ``PaymentVerifier``; quota is only
raised for a charge the verifier confirms as paid.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session
from typing_extensions import Protocol

from ..errors import ValidationError
from ..models import User
from ..repositories import user_repo

logger = logging.getLogger(__name__)

MODELS_PER_PACK = 5


@dataclass
class VerifiedPayment:
    reference: str
    user_id: int
    model_count: int = MODELS_PER_PACK


class PaymentVerifier(Protocol):
    def verify(self, reference: str) -> Optional[VerifiedPayment]: ...


def apply_model_pack_purchase(
    db: Session, user_id: int, reference: str, verifier: PaymentVerifier
) -> User:
    payment = verifier.verify(reference)
    if payment is None:
        logger.warning("unverified payment %s for user %s", reference, user_id)
        raise ValidationError.for_field("reference", "Payment could not be verified")
    if payment.user_id != user_id:
        logger.warning(
            "payment %s belongs to user %s, not %s", reference, payment.user_id, user_id
        )
        raise ValidationError.for_field("reference", "Payment could not be verified")
    user = user_repo.increment_model_quota(db, user_id, payment.model_count)
    logger.info(
        "user %s bought %s models (payment %s)", user_id, payment.model_count, reference
    )
    return user

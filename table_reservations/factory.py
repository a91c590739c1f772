"""
Build the booking service from settings.

Backends are imported lazily so the YAML development setup does not need
AWS credentials or a region.
"""

import logging
from typing import Optional

import boto3
from botocore.exceptions import NoRegionError

from .config import Settings
from .identity import CognitoIdentityProvider, IdentityProvider
from .service import BookingService
from .stores import BookingStore

logger = logging.getLogger(__name__)


def create_store(settings: Settings) -> BookingStore:
    """
    Create the booking store selected by ``settings.store_backend``.

    Raises:
        ValueError: If the backend is unknown
    """
    if settings.store_backend == "dynamodb":
        from .dynamodb_store import DynamoDBBookingStore
        return DynamoDBBookingStore(
            boto3.client("dynamodb", region_name=settings.aws_region),
            tables_table=settings.tables_table,
            reservations_table=settings.reservations_table,
            locks_table=settings.reservation_locks_table,
        )
    elif settings.store_backend == "yaml":
        from .yaml_store import YamlBookingStore
        return YamlBookingStore(settings.data_dir)
    else:
        raise ValueError(f"Unknown store backend: {settings.store_backend}")


def create_identity_provider(settings: Settings) -> IdentityProvider:
    return CognitoIdentityProvider(
        boto3.client("cognito-idp", region_name=settings.aws_region),
        user_pool_name=settings.booking_userpool,
        user_pool_id=settings.user_pool_id,
        client_id=settings.user_pool_client_id,
    )


def build_service(settings: Optional[Settings] = None) -> BookingService:
    settings = settings or Settings()

    identity: Optional[IdentityProvider] = None
    try:
        identity = create_identity_provider(settings)
    except NoRegionError:
        # Local YAML runs often have no AWS region; /signup and /signin then reject.
        logger.warning("No AWS region configured; identity provider disabled")

    return BookingService(
        store=create_store(settings),
        identity=identity,
        reservation_write_attempts=settings.reservation_write_attempts,
    )

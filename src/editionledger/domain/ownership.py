"""Certificate authentication and ownership transfers."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from logging import getLogger
from typing import TYPE_CHECKING

from editionledger.domain.errors import LineItemNotFound
from editionledger.domain.model import EditionEvent, EditionEventType, normalize_email

if TYPE_CHECKING:
    from collections.abc import Callable

    from editionledger.domain.ports.unit_of_work import EditionUnitOfWork

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AuthenticationResult:
    line_item_id: str
    authenticated_at: datetime
    already_authenticated: bool


@dataclass(frozen=True, slots=True)
class OwnershipTransfer:
    line_item_id: str
    previous_email: str | None
    previous_name: str | None
    email: str
    name: str | None


def record_authentication(
    line_item_id: str,
    *,
    unit_of_work_factory: Callable[[], EditionUnitOfWork],
    created_by: str | None = None,
    now: datetime | None = None,
) -> AuthenticationResult:
    """Stamp the first authentication of an item's certificate; repeats are no-ops."""

    with unit_of_work_factory() as uow:
        item = uow.repositories.line_items.get(line_item_id)
        if item is None:
            raise LineItemNotFound(line_item_id)
        if item.authenticated_at is not None:
            return AuthenticationResult(line_item_id, item.authenticated_at, True)

        moment = now or datetime.now(UTC)
        item.authenticated_at = moment
        item.updated_at = moment
        uow.repositories.events.add(
            EditionEvent(
                line_item_id=line_item_id,
                product_id=item.product_id,
                event_type=EditionEventType.AUTHENTICATED,
                edition_number=item.edition_number,
                payload={"owner_email": item.owner_email},
                created_at=moment,
                created_by=created_by,
            )
        )
        uow.commit()
    return AuthenticationResult(line_item_id, moment, False)


def transfer_ownership(
    line_item_id: str,
    *,
    email: str,
    name: str | None = None,
    unit_of_work_factory: Callable[[], EditionUnitOfWork],
    created_by: str | None = None,
    now: datetime | None = None,
) -> OwnershipTransfer:
    """Record a new owner for an edition; its number is unaffected."""

    new_email = normalize_email(email)
    if new_email is None:
        raise ValueError("A new owner email is required")

    with unit_of_work_factory() as uow:
        item = uow.repositories.line_items.get(line_item_id)
        if item is None:
            raise LineItemNotFound(line_item_id)

        moment = now or datetime.now(UTC)
        transfer = OwnershipTransfer(
            line_item_id=line_item_id,
            previous_email=item.owner_email,
            previous_name=item.owner_name,
            email=new_email,
            name=name,
        )
        item.owner_email = new_email
        item.owner_name = name
        item.updated_at = moment
        uow.repositories.events.add(
            EditionEvent(
                line_item_id=line_item_id,
                product_id=item.product_id,
                event_type=EditionEventType.OWNERSHIP_TRANSFER,
                edition_number=item.edition_number,
                payload={
                    "from_email": transfer.previous_email,
                    "from_name": transfer.previous_name,
                    "to_email": transfer.email,
                    "to_name": transfer.name,
                },
                created_at=moment,
                created_by=created_by,
            )
        )
        uow.commit()

    log.info(f"Transferred line item {line_item_id} to {new_email}")
    return transfer

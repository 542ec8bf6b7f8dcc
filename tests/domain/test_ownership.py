from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from editionledger.domain.errors import LineItemNotFound
from editionledger.domain.model import EditionEventType
from editionledger.domain.ownership import record_authentication, transfer_ownership
from tests.helpers.ledger_data import at, events_of, make_line_item, make_order, seed

if TYPE_CHECKING:
    from collections.abc import Callable

    from editionledger.adapters.sqlalchemy import SqlAlchemyEditionUnitOfWork

    UowFactory = Callable[[], SqlAlchemyEditionUnitOfWork]


@pytest.fixture
def edition(uow_factory: UowFactory) -> str:
    seed(
        uow_factory,
        make_order("1001"),
        make_line_item(
            "L1",
            edition_number=4,
            edition_total=10,
            owner_email="ada@example.com",
            owner_name="Ada",
        ),
    )
    return "L1"


def test_first_authentication_is_recorded_once(uow_factory: UowFactory, edition: str) -> None:
    first = record_authentication(
        edition, unit_of_work_factory=uow_factory, created_by="certificate", now=at(10)
    )
    second = record_authentication(edition, unit_of_work_factory=uow_factory, now=at(20))

    assert not first.already_authenticated
    assert second.already_authenticated
    assert second.authenticated_at == at(10)
    events = events_of(uow_factory, edition, EditionEventType.AUTHENTICATED)
    assert len(events) == 1
    assert events[0].payload == {"owner_email": "ada@example.com"}
    assert events[0].edition_number == 4
    assert events[0].created_by == "certificate"


def test_authenticating_unknown_item_raises(uow_factory: UowFactory) -> None:
    with pytest.raises(LineItemNotFound):
        record_authentication("missing", unit_of_work_factory=uow_factory)


def test_transfer_records_previous_and_new_owner(uow_factory: UowFactory, edition: str) -> None:
    transfer = transfer_ownership(
        edition, email=" Bob@Example.com", name="Bob", unit_of_work_factory=uow_factory
    )

    assert transfer.previous_email == "ada@example.com"
    assert transfer.email == "bob@example.com"
    events = events_of(uow_factory, edition, EditionEventType.OWNERSHIP_TRANSFER)
    assert [event.payload for event in events] == [
        {
            "from_email": "ada@example.com",
            "from_name": "Ada",
            "to_email": "bob@example.com",
            "to_name": "Bob",
        }
    ]
    with uow_factory() as uow:
        item = uow.repositories.line_items.get(edition)
        assert item is not None
        assert (item.owner_email, item.owner_name) == ("bob@example.com", "Bob")
        assert (item.edition_number, item.edition_total) == (4, 10)


def test_transfer_requires_an_email(uow_factory: UowFactory, edition: str) -> None:
    with pytest.raises(ValueError, match="email"):
        transfer_ownership(edition, email="  ", unit_of_work_factory=uow_factory)

    assert events_of(uow_factory, edition) == []


def test_transfer_of_unknown_item_raises(uow_factory: UowFactory) -> None:
    with pytest.raises(LineItemNotFound):
        transfer_ownership("missing", email="bob@example.com", unit_of_work_factory=uow_factory)

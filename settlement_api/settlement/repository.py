from abc import ABC, abstractmethod
from typing import Any, Dict, NamedTuple, Tuple

TRANSACTION = 'transaction'
ESCROW = 'escrow'
PAYMENT = 'payment'
RATING = 'rating'
REPUTATION = 'reputation'
NOTIFICATION = 'notification'

ENTITIES = (TRANSACTION, ESCROW, PAYMENT, RATING, REPUTATION, NOTIFICATION)


class Ref(NamedTuple):
    """Primary key of the record produced by operation `index` of the same batch."""
    index: int


class Create(NamedTuple):
    """Insert a new row. The created record is returned by atomic_batch."""
    entity: str
    fields: Dict[str, Any]


def resolve_refs(fields, results):
    return {
        name: results[value.index].pk if isinstance(value, Ref) else value
        for name, value in fields.items()
    }


class Update(NamedTuple):
    """
    Conditional update of a single row.

    expected_status lists the statuses the row may currently hold; an empty
    tuple makes the write unconditional. An update with no fields only asserts
    the precondition, locking the row for the rest of the batch.
    """
    entity: str
    pk: Any
    fields: Dict[str, Any]
    expected_status: Tuple[str, ...] = ()


class TransactionRepository(ABC):
    """
    Storage contract consumed by the settlement services.

    Records are plain attribute objects (model instances for the Django
    implementation). The only consistency guarantee is that update() and each
    atomic_batch() are compare-and-set and all-or-nothing.
    """

    @abstractmethod
    def get(self, entity, pk):
        """
        Fetch a row by primary key.

        Raises:
            NotFoundError: if the row does not exist.
        """

    @abstractmethod
    def find(self, entity, **lookup):
        """Return the single row matching lookup, or None."""

    @abstractmethod
    def update(self, entity, pk, fields, expected_status=()):
        """
        Apply fields to a row if its status is in expected_status.

        Returns:
            The updated record.

        Raises:
            NotFoundError: if the row does not exist.
            PreconditionFailedError: if the row's status is not expected.
        """

    @abstractmethod
    def atomic_batch(self, operations):
        """
        Apply a list of Create/Update operations in one unit of work.

        Returns:
            list: the resulting record for each operation, in order.

        Raises:
            PreconditionFailedError / NotFoundError: nothing is written.
        """

    # Query interface used by the reputation engine and background jobs.

    @abstractmethod
    def list_rating_scores(self, user_id):
        """Scores of every rating received by user_id."""

    @abstractmethod
    def count_transactions(self, user_id, statuses=None, role=None, exclude_statuses=None):
        """
        Count transactions where user_id is buyer or seller.

        Args:
            statuses: restrict to these statuses (None for all)
            role: 'buyer', 'seller' or None for either side
            exclude_statuses: statuses to leave out
        """

    @abstractmethod
    def sum_amount_by_crypto_for_user(self, user_id):
        """
        Completed volume per cryptocurrency.

        Returns:
            list of dicts with cryptocurrency, asset_volume, fiat_volume, count
        """

    @abstractmethod
    def sum_fiat_volume_for_user(self, user_id):
        """Total fiat amount of the user's completed transactions (Decimal)."""

    @abstractmethod
    def upsert_reputation(self, user_id, fields):
        """Create or replace the reputation row of user_id."""

    @abstractmethod
    def list_top_reputations(self, limit):
        """Reputations with completed trades, best average score first."""

    @abstractmethod
    def get_display_name(self, user_id):
        """Human readable name of a user, or None if unknown."""

"""
Household Repository - whole-document storage of household ledgers

The ledger of a household lives in one JSON document. Reads load the full
document; writes replace it entirely (last writer wins, no merging).
"""
import logging
from typing import Optional

from sqlalchemy.orm import Session

from messledger.domain.ledger import Ledger
from messledger.infrastructure.db.models import Household

logger = logging.getLogger(__name__)


class HouseholdNotFoundError(LookupError):
    """Unknown household id"""
    pass


class HouseholdRepository:
    """
    Repository for household ledger documents
    """

    def __init__(self, db: Session):
        self.db = db

    def get(self, household_id: str) -> Optional[Household]:
        return self.db.query(Household).filter(Household.id == household_id).first()

    def create(self, household_id: str, name: str, ledger: Ledger | None = None) -> Household:
        """
        Register a household with an (optionally empty) ledger

        Args:
            household_id: join code of the household
            name: display name
            ledger: initial snapshot (default: empty ledger)

        Returns:
            Household row (flushed, not committed)
        """
        household = Household(
            id=household_id,
            name=name,
            db_json=(ledger or Ledger()).to_document(),
        )
        self.db.add(household)
        self.db.flush()
        return household

    def load(self, household_id: str) -> Ledger:
        """
        Load the full ledger snapshot

        Raises:
            HouseholdNotFoundError: if the household does not exist
        """
        household = self.get(household_id)
        if household is None:
            raise HouseholdNotFoundError(f"Household {household_id} not found")
        return Ledger.from_document(household.db_json)

    def save(self, household_id: str, ledger: Ledger) -> None:
        """
        Replace the stored document with `ledger` and commit

        Raises:
            HouseholdNotFoundError: if the household does not exist
        """
        household = self.get(household_id)
        if household is None:
            raise HouseholdNotFoundError(f"Household {household_id} not found")

        household.db_json = ledger.to_document()
        self.db.commit()
        logger.info("Household %s ledger saved", household_id)

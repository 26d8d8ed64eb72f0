"""
Search service - cross-state filtering and lookup by full code.
"""
from datetime import date
from typing import List, Optional
from loguru import logger

from cbenef.models import BenefitRecord, ExtractionResult
from .integration import IntegrationService
from .cache import CacheService


class SearchService:
    """Searches the records of one or all available states, through the cache when there is one"""

    def __init__(self, integration: IntegrationService, cache: Optional[CacheService] = None):
        self.integration = integration
        self.cache = cache

    def _fetch(self, state_code: str) -> Optional[ExtractionResult]:
        if self.cache is not None:
            return self.cache.get_by_state(state_code)
        return self.integration.extract_by_state(state_code)

    def _records_of(self, state_codes: List[str]) -> List[BenefitRecord]:
        records: List[BenefitRecord] = []
        for state_code in state_codes:
            result = self._fetch(state_code)
            if result is not None and result.is_success():
                records.extend(result.records)
        return records

    def search(self,
               code: Optional[str] = None,
               description: Optional[str] = None,
               state_code: Optional[str] = None,
               active_only: bool = True,
               reference_date: Optional[date] = None) -> List[BenefitRecord]:
        """
        Filter records; every given criterion must hold.

        Args:
            code: Case-insensitive substring of the local or the full code
            description: Case-insensitive substring of the description
            state_code: Restrict to one state (default: all available states)
            active_only: Keep only records active on reference_date (default today)
        """
        states = [state_code.upper()] if state_code else self.integration.get_available_states()
        records = self._records_of(states)
        reference_date = reference_date or date.today()

        if code:
            needle = code.lower()
            records = [r for r in records if needle in r.code.lower() or needle in r.full_code.lower()]
        if description:
            needle = description.lower()
            records = [r for r in records if needle in r.description.lower()]
        if active_only:
            records = [r for r in records if r.is_active(reference_date)]

        logger.info(f"Search returned {len(records)} benefits "
                    f"(code={code}, description={description}, state={state_code}, active_only={active_only})")
        return records

    def find_by_full_code(self, full_code: str) -> Optional[BenefitRecord]:
        """Lookup by state + local code (ex: SC850001); None when not found"""
        if not full_code or len(full_code) < 3:
            return None

        state_code = full_code[:2].upper()
        code = full_code[2:]
        for record in self._records_of([state_code]):
            if record.code == code:
                return record
        return None

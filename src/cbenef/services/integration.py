"""
Integration service - concurrent per-state extraction.
"""
from typing import Any, Dict, List, Optional
from concurrent.futures import ThreadPoolExecutor, as_completed
from loguru import logger

from cbenef.models import ExtractionResult
from cbenef.core import ExtractorFactory
from cbenef.exceptions import ExtractionError


class IntegrationService:
    """
    Runs state extractions, one task per state on a small thread pool.
    A failing state never affects the others: every task ends in a
    result value.
    """

    def __init__(self, factory: ExtractorFactory, max_workers: int = 3):
        """
        Initialize integration service.

        Args:
            factory: Extractor factory
            max_workers: Maximum concurrent extractions
        """
        self.factory = factory
        self.max_workers = max_workers

    def get_available_states(self) -> List[str]:
        """Enabled states with a registered extractor, by ascending priority"""
        return [extractor.state_code for extractor in self.factory.get_available_extractors()]

    def extract_by_state(self, state_code: str) -> Optional[ExtractionResult]:
        """
        Extract a single state.

        Returns:
            The extraction result, or None when the state has no extractor
            or is disabled
        """
        state_code = state_code.upper()
        extractor = self.factory.create_extractor(state_code)
        if extractor is None:
            logger.warning(f"No extractor found for state {state_code}")
            return None
        if not extractor.is_enabled():
            logger.warning(f"Extractor for state {state_code} is disabled")
            return None

        try:
            return extractor.extract()
        except ExtractionError as e:
            logger.error(f"Extraction error for {state_code}: {e}")
            return ExtractionResult.error(state_code, str(e))
        except Exception as e:
            logger.error(f"Unexpected error extracting {state_code}: {e}")
            return ExtractionResult.error(state_code, f"Unexpected error: {e}")

    def extract_all_states(self) -> Dict[str, ExtractionResult]:
        return self.extract_multiple_states(self.get_available_states())

    def extract_multiple_states(self, state_codes: List[str]) -> Dict[str, ExtractionResult]:
        """
        Extract several states concurrently and wait for all of them.

        States whose extraction returned None are left out of the map;
        ERROR results are kept.
        """
        results: Dict[str, ExtractionResult] = {}
        if not state_codes:
            return results

        logger.info(f"Starting concurrent extraction of {len(state_codes)} states "
                    f"(max workers: {self.max_workers})")

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_state = {
                executor.submit(self.extract_by_state, state_code): state_code
                for state_code in state_codes
            }

            for future in as_completed(future_to_state):
                state_code = future_to_state[future]
                try:
                    result = future.result()
                except Exception as e:
                    logger.error(f"Unexpected error extracting {state_code}: {e}")
                    result = ExtractionResult.error(state_code, f"Unexpected error: {e}")

                if result is not None:
                    results[result.state_code] = result

        successful = sum(1 for r in results.values() if r.is_success())
        logger.info(f"Batch extraction complete: {successful}/{len(results)} successful")
        return results

    def get_extractor_info(self, state_code: str) -> Optional[Dict[str, Any]]:
        extractor = self.factory.create_extractor(state_code)
        if extractor is None:
            return None

        return {
            "stateCode": extractor.state_code,
            "sourceName": extractor.source_name,
            "sourceUrl": self.factory.settings.get_source_url(extractor.state_code),
            "supportedFormats": [f.value for f in extractor.supported_formats],
            "enabled": extractor.is_enabled(),
            "priority": extractor.get_priority(),
            "displayName": extractor.get_display_name(),
            "connectionTimeout": extractor.connection_timeout,
            "readTimeout": extractor.read_timeout,
            "maxRetries": extractor.max_retries,
        }

"""
Extractor factory - maps state codes to configured extractors.
"""
from typing import Dict, List, Optional, Type
from loguru import logger

from cbenef.models import Settings
from cbenef.clients import AvailabilityClient, CBenefHttpClient, DownloadClient
from .extractor import StateExtractor, TextConverter
from .parsers import PARSERS, StateParser
from .pdf_text import text_of


class ExtractorFactory:
    """Builds one StateExtractor per registered state, sharing the HTTP clients"""

    def __init__(self,
                 settings: Settings,
                 http_client: Optional[CBenefHttpClient] = None,
                 parsers: Optional[Dict[str, Type[StateParser]]] = None,
                 text_converter: TextConverter = text_of):
        self.settings = settings
        self.http_client = http_client or CBenefHttpClient(settings.connection)
        self.download_client = DownloadClient(self.http_client, settings)
        self.availability_client = AvailabilityClient(self.http_client, settings)
        self.parsers = dict(parsers if parsers is not None else PARSERS)
        self.text_converter = text_converter

    def get_supported_states(self) -> List[str]:
        return sorted(self.parsers)

    def create_extractor(self, state_code: str) -> Optional[StateExtractor]:
        """None when no parser is registered for the state"""
        parser_class = self.parsers.get(state_code.upper())
        if parser_class is None:
            logger.debug(f"No extractor registered for state {state_code}")
            return None

        source_url = self.settings.get_source_url(parser_class.state_code) or ""
        return StateExtractor(
            parser_class(source_url),
            self.settings,
            self.download_client,
            self.availability_client,
            self.text_converter
        )

    def get_available_extractors(self) -> List[StateExtractor]:
        """Extractors of the enabled states, by ascending priority"""
        extractors = []
        for state_code in self.settings.get_enabled_states():
            extractor = self.create_extractor(state_code)
            if extractor is not None:
                extractors.append(extractor)
        return sorted(extractors, key=lambda e: e.get_priority())

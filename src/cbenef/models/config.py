"""
Configuration models and loaders.
"""
from typing import Dict, List, Optional
from pathlib import Path
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
import tomli
from loguru import logger


class ConnectionConfig(BaseModel):
    """Global HTTP connection defaults (times in milliseconds)"""
    timeout: int = Field(30000, ge=1000, le=300000)
    read_timeout: int = Field(60000, ge=1000, le=600000)
    user_agent: str = Field("CBenef-Library/1.0", min_length=1)
    max_retries: int = Field(3, ge=1, le=10)
    retry_delay: int = Field(1000, ge=100, le=30000)
    max_concurrent_extractions: int = Field(3, ge=1, le=10)


class CacheConfig(BaseModel):
    """Extraction result cache configuration"""
    enabled: bool = False
    ttl_minutes: int = Field(1440, ge=60)
    max_size: int = Field(1000, ge=10, le=10000)
    cleanup_interval_hours: int = Field(1, ge=1, le=24)
    state_specific_ttl: Dict[str, int] = Field(
        default_factory=lambda: {"SC": 720, "ES": 720, "RJ": 720}
    )

    def get_ttl_for_state(self, state_code: str) -> int:
        return self.state_specific_ttl.get(state_code, self.ttl_minutes)

    def is_state_specific_ttl(self, state_code: str) -> bool:
        return state_code in self.state_specific_ttl


class SyncConfig(BaseModel):
    """Synchronisation pass configuration"""
    enabled: bool = False
    initial_sync: bool = False
    use_cache: bool = False
    specific_states: List[str] = Field(default_factory=list)
    parallel: bool = True

    def get_states_to_sync(self, available_states: List[str]) -> List[str]:
        if self.specific_states:
            return [s for s in self.specific_states if s in available_states]
        return list(available_states)


class StateSourceConfig(BaseModel):
    """Static configuration of one state's source document"""
    enabled: bool = False
    priority: int = Field(5, ge=1, le=26)
    source_url: Optional[str] = None
    custom_timeout: Optional[int] = None
    custom_read_timeout: Optional[int] = None
    custom_max_retries: Optional[int] = None
    custom_headers: Dict[str, str] = Field(default_factory=dict)
    fallback_urls: List[str] = Field(default_factory=list)
    force_cache: bool = False
    custom_cache_ttl: Optional[int] = None

    def should_use_cache(self, global_cache_enabled: bool) -> bool:
        return global_cache_enabled or self.force_cache

    def get_cache_ttl(self, default_ttl: int) -> int:
        return self.custom_cache_ttl if self.custom_cache_ttl is not None else default_ttl


def default_states() -> Dict[str, StateSourceConfig]:
    """Known state sources. Only SC, ES and RJ are enabled out of the box."""
    return {
        "SC": StateSourceConfig(
            enabled=True,
            priority=1,
            source_url="https://www.sef.sc.gov.br/api-portal/Documento/Ver/1188",
            custom_timeout=15000,
            custom_headers={"Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"},
        ),
        "ES": StateSourceConfig(
            enabled=True,
            priority=2,
            source_url="https://sefaz.es.gov.br/Media/Sefaz/Receita%20Estadual/GEFIS/cBenef%20ES%20V6.pdf",
            custom_timeout=45000,
            custom_read_timeout=90000,
            custom_headers={"Accept": "application/pdf"},
        ),
        "RJ": StateSourceConfig(
            enabled=True,
            priority=3,
            source_url="https://portal.fazenda.rj.gov.br/dfe/wp-content/uploads/sites/17/2023/10/Tabela-codigo-de-beneficio-X-CST.pdf",
            custom_timeout=60000,
            custom_read_timeout=120000,
            custom_max_retries=5,
            custom_headers={"Accept": "application/pdf", "Referer": "https://portal.fazenda.rj.gov.br"},
        ),
        "PR": StateSourceConfig(
            enabled=False,
            priority=4,
            source_url="http://sped.fazenda.pr.gov.br/sites/sped/arquivos_restritos/files/documento/2025-04/TABELA_5_2_COMPLETA.pdf",
            custom_timeout=30000,
            custom_headers={"Accept": "application/pdf"},
        ),
        "RS": StateSourceConfig(
            enabled=False,
            priority=5,
            custom_headers={
                "Accept": "application/vnd.ms-excel,application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
            },
        ),
        "GO": StateSourceConfig(
            enabled=False,
            priority=6,
            source_url="https://appasp.economia.go.gov.br/legislacao/arquivos/Secretario/IN/IN_1518_2022.htm",
            custom_timeout=25000,
            custom_headers={"Accept": "text/html"},
        ),
        "DF": StateSourceConfig(enabled=False, priority=7),
    }


class Settings(BaseModel):
    """Complete library settings"""
    connection: ConnectionConfig = Field(default_factory=ConnectionConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    states: Dict[str, StateSourceConfig] = Field(default_factory=default_states)

    @classmethod
    def load_from_toml(cls, config_path: Path) -> "Settings":
        """Load settings from TOML file, merging state tables over the defaults"""
        try:
            with open(config_path, "rb") as f:
                data = tomli.load(f)
            states = default_states()
            for state_code, state_data in data.pop("states", {}).items():
                states[state_code.upper()] = StateSourceConfig(**state_data)
            return cls(states=states, **data)
        except Exception as e:
            logger.warning(f"Failed to load config from {config_path}: {e}. Using defaults.")
            return cls()

    def get_enabled_states(self) -> List[str]:
        return sorted(code for code, state in self.states.items() if state.enabled)

    def is_state_enabled(self, state_code: str) -> bool:
        state = self.states.get(state_code)
        return state.enabled if state else False

    def get_connection_timeout(self, state_code: str) -> int:
        state = self.states.get(state_code)
        if state and state.custom_timeout is not None:
            return state.custom_timeout
        return self.connection.timeout

    def get_read_timeout(self, state_code: str) -> int:
        state = self.states.get(state_code)
        if state and state.custom_read_timeout is not None:
            return state.custom_read_timeout
        return self.connection.read_timeout

    def get_max_retries(self, state_code: str) -> int:
        state = self.states.get(state_code)
        if state and state.custom_max_retries is not None:
            return state.custom_max_retries
        return self.connection.max_retries

    def get_custom_headers(self, state_code: str) -> Dict[str, str]:
        state = self.states.get(state_code)
        return dict(state.custom_headers) if state else {}

    def get_source_url(self, state_code: str) -> Optional[str]:
        state = self.states.get(state_code)
        return state.source_url if state else None

    def get_fallback_urls(self, state_code: str) -> List[str]:
        state = self.states.get(state_code)
        return list(state.fallback_urls) if state else []

    def get_priority(self, state_code: str) -> int:
        state = self.states.get(state_code)
        return state.priority if state else 99

    def is_cache_enabled(self) -> bool:
        return self.cache.enabled or any(state.force_cache for state in self.states.values())

    def should_use_cache(self, state_code: str) -> bool:
        state = self.states.get(state_code)
        if state is None:
            return self.cache.enabled
        return state.should_use_cache(self.cache.enabled)

    def get_cache_ttl(self, state_code: str) -> int:
        default_ttl = self.cache.get_ttl_for_state(state_code)
        state = self.states.get(state_code)
        return state.get_cache_ttl(default_ttl) if state else default_ttl


class EnvironmentSettings(BaseSettings):
    """Environment variables"""
    log_level: str = "INFO"
    config_path: str = "config/settings.toml"
    output_dir: str = "./output"

    model_config = SettingsConfigDict(
        env_prefix="CBENEF_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

"""
Configuration management for TrapForge.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, SecretStr
from pydantic_settings import BaseSettings

# The only ledger network deployments may target.
SUPPORTED_CHAIN_ID = 560048
SUPPORTED_NETWORK_NAME = "Hoodi Testnet"


class ProviderCredential(BaseModel):
    """Credential and endpoint for one remote generation provider."""

    model_config = ConfigDict(frozen=True)

    name: str
    api_key: Optional[SecretStr] = None
    model: str
    base_url: str

    @property
    def configured(self) -> bool:
        return self.api_key is not None and bool(self.api_key.get_secret_value())


class ProviderCredentials(BaseModel):
    """Immutable set of provider credentials, built once at startup."""

    model_config = ConfigDict(frozen=True)

    openai: ProviderCredential
    anthropic: ProviderCredential
    gemini: ProviderCredential
    timeout_seconds: float = 30.0


class NetworkConfig(BaseModel):
    """Immutable description of the supported ledger network."""

    model_config = ConfigDict(frozen=True)

    chain_id: int = SUPPORTED_CHAIN_ID
    name: str = SUPPORTED_NETWORK_NAME
    rpc_url: str
    explorer_url: str
    currency: str = "ETH"
    request_timeout_seconds: float = 30.0
    inclusion_timeout_seconds: float = 300.0
    receipt_poll_interval_seconds: float = 2.0


class SubmissionCredential(BaseModel):
    """Deployer account bound to the signer endpoint."""

    model_config = ConfigDict(frozen=True)

    account: str
    signer_url: str
    signer_token: Optional[SecretStr] = None


class ToolchainConfig(BaseModel):
    """External compiler toolchain invocation."""

    model_config = ConfigDict(frozen=True)

    command: List[str]
    project_root: str
    contracts_dir: str = "contracts"
    artifacts_dir: str = "artifacts"
    timeout_seconds: float = 60.0
    compiler_version: str = "0.8.19"
    optimizer_enabled: bool = True
    optimizer_runs: int = 200


class Settings(BaseSettings):
    """Application settings."""

    # Application
    app_name: str = Field(default="TrapForge", env="APP_NAME")
    debug: bool = Field(default=False, env="DEBUG")
    environment: str = Field(default="development", env="ENVIRONMENT")

    # Database
    database_url: str = Field(default="sqlite:///./trapforge.db", env="DATABASE_URL")

    # Logging
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    log_format: str = Field(default="json", env="LOG_FORMAT")

    # Generation providers
    openai_api_key: Optional[str] = Field(default=None, env="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4", env="OPENAI_MODEL")
    openai_base_url: str = Field(
        default="https://api.openai.com/v1", env="OPENAI_BASE_URL"
    )
    anthropic_api_key: Optional[str] = Field(default=None, env="ANTHROPIC_API_KEY")
    anthropic_model: str = Field(
        default="claude-3-5-sonnet-latest", env="ANTHROPIC_MODEL"
    )
    anthropic_base_url: str = Field(
        default="https://api.anthropic.com/v1", env="ANTHROPIC_BASE_URL"
    )
    gemini_api_key: Optional[str] = Field(default=None, env="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-1.5-pro", env="GEMINI_MODEL")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        env="GEMINI_BASE_URL",
    )
    generation_timeout_seconds: float = Field(
        default=30.0, env="GENERATION_TIMEOUT_SECONDS"
    )

    # Network
    hoodi_rpc_url: str = Field(
        default="https://rpc.hoodi.ethpandaops.io", env="HOODI_RPC_URL"
    )
    hoodi_explorer_url: str = Field(
        default="https://hoodi.etherscan.io", env="HOODI_EXPLORER_URL"
    )
    rpc_timeout_seconds: float = Field(default=30.0, env="RPC_TIMEOUT_SECONDS")
    inclusion_timeout_seconds: float = Field(
        default=300.0, env="INCLUSION_TIMEOUT_SECONDS"
    )
    receipt_poll_interval_seconds: float = Field(
        default=2.0, env="RECEIPT_POLL_INTERVAL_SECONDS"
    )

    # Submission
    deployer_account: Optional[str] = Field(default=None, env="DEPLOYER_ACCOUNT")
    signer_url: Optional[str] = Field(
        default=None,
        env="SIGNER_URL",
        description="JSON-RPC endpoint holding the deployer key. Defaults to HOODI_RPC_URL.",
    )
    signer_token: Optional[str] = Field(default=None, env="SIGNER_TOKEN")

    # Toolchain
    toolchain_command: str = Field(default="npx hardhat compile", env="TOOLCHAIN_COMMAND")
    toolchain_project_root: str = Field(default=".", env="TOOLCHAIN_PROJECT_ROOT")
    compile_timeout_seconds: float = Field(default=60.0, env="COMPILE_TIMEOUT_SECONDS")
    solc_version: str = Field(default="0.8.19", env="SOLC_VERSION")

    # Pipeline
    pipeline_workers: int = Field(default=2, env="PIPELINE_WORKERS")
    output_root: str = Field(default="./deployments", env="OUTPUT_ROOT")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    def provider_credentials(self) -> ProviderCredentials:
        """Freeze the provider keys into an immutable credentials struct."""

        def _secret(value: Optional[str]) -> Optional[SecretStr]:
            return SecretStr(value) if value else None

        return ProviderCredentials(
            openai=ProviderCredential(
                name="openai",
                api_key=_secret(self.openai_api_key),
                model=self.openai_model,
                base_url=self.openai_base_url,
            ),
            anthropic=ProviderCredential(
                name="anthropic",
                api_key=_secret(self.anthropic_api_key),
                model=self.anthropic_model,
                base_url=self.anthropic_base_url,
            ),
            gemini=ProviderCredential(
                name="gemini",
                api_key=_secret(self.gemini_api_key),
                model=self.gemini_model,
                base_url=self.gemini_base_url,
            ),
            timeout_seconds=self.generation_timeout_seconds,
        )

    def network_config(self) -> NetworkConfig:
        return NetworkConfig(
            rpc_url=self.hoodi_rpc_url,
            explorer_url=self.hoodi_explorer_url,
            request_timeout_seconds=self.rpc_timeout_seconds,
            inclusion_timeout_seconds=self.inclusion_timeout_seconds,
            receipt_poll_interval_seconds=self.receipt_poll_interval_seconds,
        )

    def submission_credential(self) -> Optional[SubmissionCredential]:
        """Return the deployer credential, or None when none is configured."""
        if not self.deployer_account:
            return None
        return SubmissionCredential(
            account=self.deployer_account,
            signer_url=self.signer_url or self.hoodi_rpc_url,
            signer_token=SecretStr(self.signer_token) if self.signer_token else None,
        )

    def toolchain_config(self) -> ToolchainConfig:
        return ToolchainConfig(
            command=self.toolchain_command.split(),
            project_root=self.toolchain_project_root,
            timeout_seconds=self.compile_timeout_seconds,
            compiler_version=self.solc_version,
        )


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings."""
    return settings

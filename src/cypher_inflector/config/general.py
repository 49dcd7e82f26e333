import warnings
from typing import Annotated, ClassVar

from typing_extensions import override

from pydantic import AfterValidator, BaseModel, Field, SecretStr
from pydantic_file_secrets import FileSecretsSettingsSource, SettingsConfigDict
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    YamlConfigSettingsSource,
)

from cypher_inflector.types.general import LogLevel
from cypher_inflector.utils.general import CommentedSettings

# Filter warnings about secrets because they're optional
warnings.filterwarnings(
    action="ignore", message='directory "/run/secrets" does not exist'
)
warnings.filterwarnings(
    action="ignore", message='directory "config/secrets" does not exist'
)


class CORSSettings(BaseModel):
    """CORS-specific settings."""

    allow_origins: Annotated[
        list[str],
        Field(description="Origins allowed to make cross-origin requests."),
    ] = ["*"]
    allow_credentials: Annotated[
        bool, Field(description="Support cookies in cross-origin requests.")
    ] = True
    allow_methods: Annotated[
        list[str], Field(description="Methods allowed in cross-origin requests.")
    ] = ["*"]
    allow_headers: Annotated[
        list[str], Field(description="Headers allowed in cross-origin requests.")
    ] = ["*"]


class TelemetrySettings(BaseModel):
    """Settings for OpenTelelemtry and Sentry."""

    otel_enabled: bool = False
    otel_host: SecretStr | None = None
    otel_port: int | None = 4318
    otel_trace_endpoint: str | None = "/v1/traces"

    sentry_enabled: bool = False
    sentry_dsn: SecretStr | None = None
    traces_sample_rate: Annotated[
        float, Field(description="Proportion of traces to send to Sentry.")
    ] = 0.1


class Neo4jSettings(BaseModel):
    """Settings for the Neo4j backend."""

    query_timeout: Annotated[
        int, Field(description="Time in seconds before a neo4j query should time out.")
    ] = 600
    connect_retries: Annotated[
        int,
        Field(description="Number of retries before declaring a connection failure."),
    ] = 5
    host: str = "localhost"
    bolt_port: int = 7687
    username: str = "neo4j"
    password: SecretStr = SecretStr("")
    database_name: str = "neo4j"
    max_connection_pool_size: int = 100

    @property
    def uri(self) -> str:
        """Get the bolt URI of the configured instance."""
        return f"bolt://{self.host}:{self.bolt_port}"


class EntailmentSettings(BaseModel):
    """Settings for relationship type entailment."""

    transitive: Annotated[
        bool,
        Field(
            description="Follow sub-types of sub-types until no new types are found, instead of one hop."
        ),
    ] = False
    subsumption_relationship: Annotated[
        str,
        Field(description="Relationship type linking a sub-type to its parent type."),
    ] = "subPropertyOf"
    type_property: Annotated[
        str,
        Field(
            description="Node property holding the relationship type name it declares."
        ),
    ] = "fragment"


class EndpointSettings(BaseModel):
    """A templated query exposed as a GET endpoint."""

    path: Annotated[
        str, Field(description="Route of the endpoint, e.g. /dynamic/neighbors.")
    ]
    query: Annotated[str, Field(description="Cypher query template.")]
    summary: str = ""
    description: str = ""
    tags: list[str] = Field(default_factory=lambda: ["dynamic"])


def uppercase(value: str) -> str:
    """Make a string uppercase."""
    return value.upper()


class GeneralConfig(CommentedSettings):
    """General application config."""

    debug: Annotated[
        bool,
        Field(
            description="Run server with increased compatibility for breakpoint debugging."
        ),
    ] = False
    instance_env: Annotated[
        str,
        Field(description="Instance environment. Used in Sentry and log output."),
    ] = "dev"

    log_level: Annotated[
        LogLevel,
        AfterValidator(uppercase),
    ] = Field(
        default="DEBUG",
        description="Level of application logs to print/keep.",
    )
    host: Annotated[str, Field(description="Uvicorn listen host.")] = "0.0.0.0"
    port: Annotated[int, Field(description="Uvicorn listen port.")] = 8080
    trust_proxy: Annotated[
        bool, Field(description="Use proxy IP headers (such as in nginx cases)")
    ] = True
    cors: CORSSettings = CORSSettings()

    neo4j: Neo4jSettings = Neo4jSettings()
    entailment: EntailmentSettings = EntailmentSettings()
    telemetry: TelemetrySettings = TelemetrySettings()

    curies: dict[str, str] = Field(
        description="CURIE prefixes and the IRI base each one expands to.",
        default_factory=lambda: {
            "BFO": "http://purl.obolibrary.org/obo/BFO_",
            "HP": "http://purl.obolibrary.org/obo/HP_",
            "RO": "http://purl.obolibrary.org/obo/RO_",
        },
    )
    endpoints: list[EndpointSettings] = Field(
        description="Templated Cypher queries to expose.",
        default_factory=list,
    )

    # Weird override happening here, see https://github.com/makukha/pydantic-file-secrets for an explanation
    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(  # pyright:ignore[reportIncompatibleVariableOverride] This is the intended pattern
        case_sensitive=False,
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        yaml_file="config/config.yaml",
        yaml_file_encoding="utf-8",
        secrets_dir=["config/secrets", "/run/secrets"],
        secrets_nested_delimiter="__",
    )

    @classmethod
    @override
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Ensure proper setting priority order."""
        return (
            env_settings,
            FileSecretsSettingsSource(file_secret_settings),
            file_secret_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            init_settings,
        )


CONFIG = GeneralConfig()

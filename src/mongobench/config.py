"""
Configuration Module.

This module resolves the harness property bag (string keys and values) into
the typed, validated `BindingConfig` shared by every worker of the process.
Property names are declared as field aliases, so the bag can be validated as
is; unknown properties belong to the harness and are ignored.
"""

from typing import Any, Dict, List, Mapping

import pydantic
from pydantic import ConfigDict, Field, field_validator, model_validator

from .enum import EncryptionMode, PayloadEncoding, ReadLocality, WriteConcernLevel
from .generators.discrete import parse_comma_separated_integers
from .helpers import find_endpoint_credentials, split_endpoints
from .logging_config import get_logger

logger = get_logger(__name__)

DEFAULT_URL = "mongodb://localhost:27017"

ENCRYPTED_POOL_FACTOR = 3
"""Pool size multiplier when encryption is on: key vault and query analysis need extra connections."""


class ConfigurationError(Exception):
    """Raised when the property bag cannot be resolved into a valid configuration."""

    pass


def _parse_bool(value: Any) -> bool:
    # Anything other than a case-insensitive "true" is False, as in the harness property files
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


class BindingConfig(pydantic.BaseModel):
    """
    Typed settings of the binding, resolved once per process.

    Instances are immutable: all workers read the same configuration for the
    whole run. Use `from_properties()` to build one from the harness bag.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True, extra="ignore")

    url: str = Field(DEFAULT_URL, alias="mongodb.url")
    """One or more connection targets, separated by `|`."""

    database: str = Field("ycsb", alias="mongodb.database")
    collection: str = Field("usertable", alias="mongodb.collection")
    """Collection prepared by the encryption setup (schemas, encrypted fields)."""

    shard_key: str = Field("", alias="mongodb.shardKey")
    """Name of the shard key field, mirrored from the record key. Empty disables it."""

    location: str = Field("", alias="mongodb.location")
    """Location value stamped on every record and used as a filter. Empty disables it."""

    location_field: str = Field("location", alias="mongodb.locationField")

    username: str = Field("", alias="mongodb.username")
    password: str = Field("", alias="mongodb.password")

    write_concern: WriteConcernLevel = Field(
        WriteConcernLevel.ACKNOWLEDGED, alias="mongodb.writeConcern"
    )
    read_preference: ReadLocality = Field(
        ReadLocality.PRIMARY, alias="mongodb.readPreference"
    )

    batch_size: int = Field(1, ge=1, alias="batchsize")
    datatype: PayloadEncoding = Field(PayloadEncoding.BINARY, alias="datatype")
    compressibility: float = Field(1.0, gt=0, alias="compressibility")
    thread_count: int = Field(100, ge=1, alias="threadcount")

    sharded: bool = Field(False, alias="mongodb.sharded")
    use_fle: bool = Field(False, alias="mongodb.fle")
    use_qe: bool = Field(False, alias="mongodb.qe")
    remote_schema: bool = Field(False, alias="mongodb.remote_schema")
    num_encrypted_fields: int = Field(10, ge=0, alias="mongodb.numFleFields")
    contention_factors: List[int] = Field(
        default_factory=list, alias="mongodb.contentionFactors"
    )
    """Per field index; -1 marks an unset entry."""

    cardinalities: List[int] = Field(default_factory=list, alias="mongodb.cardinalities")
    """Per field index; 0 marks a field without discrete override."""

    use_crypt_shared_lib: bool = Field(False, alias="mongodb.useCryptSharedLib")
    crypt_shared_lib_path: str = Field("", alias="mongodb.cryptSharedLibPath")

    # --- Validators ---

    @field_validator(
        "sharded",
        "use_fle",
        "use_qe",
        "remote_schema",
        "use_crypt_shared_lib",
        mode="before",
    )
    @classmethod
    def _validate_flag(cls, v: Any) -> bool:
        return _parse_bool(v)

    @field_validator("write_concern", "read_preference", mode="before")
    @classmethod
    def _lower_enum_value(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("datatype", mode="before")
    @classmethod
    def _validate_datatype(cls, v: Any) -> Any:
        if isinstance(v, str):
            for encoding in PayloadEncoding:
                if encoding.value.lower() == v.strip().lower():
                    return encoding
        return v

    @field_validator("contention_factors", mode="before")
    @classmethod
    def _parse_contention_factors(cls, v: Any) -> Any:
        if isinstance(v, str):
            return parse_comma_separated_integers(v, -1)
        return v

    @field_validator("cardinalities", mode="before")
    @classmethod
    def _parse_cardinalities(cls, v: Any) -> Any:
        if isinstance(v, str):
            return parse_comma_separated_integers(v, 0)
        return v

    @model_validator(mode="after")
    def _check_consistency(self) -> "BindingConfig":
        if self.use_fle and self.use_qe:
            raise ValueError("mongodb.fle and mongodb.qe cannot both be true")
        if self.use_crypt_shared_lib and not self.crypt_shared_lib_path:
            raise ValueError(
                "mongodb.cryptSharedLibPath must be non-empty if mongodb.useCryptSharedLib is true"
            )
        if not split_endpoints(self.url):
            raise ValueError("mongodb.url does not contain any endpoint")
        return self

    # --- Factory ---

    @classmethod
    def from_properties(cls, properties: Mapping[str, str]) -> "BindingConfig":
        """
        Resolves the harness property bag into a `BindingConfig`.

        Credentials embedded in the URL take precedence over the
        `mongodb.username`/`mongodb.password` properties. When both are
        present and disagree, a warning is logged and the URL wins.

        Args:
            properties: The string key/value configuration of the harness.

        Returns:
            BindingConfig: The validated, immutable settings.

        Raises:
            ConfigurationError: On any invalid value (unknown write concern or
                read preference, both encryption modes, malformed numbers...).
        """
        values: Dict[str, Any] = dict(properties)
        url = values.get("mongodb.url", DEFAULT_URL)

        url_credentials = find_endpoint_credentials(url)
        if url_credentials is not None:
            uri_username, uri_password = url_credentials
            if "mongodb.username" in values and "mongodb.password" in values:
                if (
                    values["mongodb.username"] != uri_username
                    or values["mongodb.password"] != uri_password
                ):
                    logger.warning(
                        "Username/Password provided in the properties does not match "
                        "what is present in the URI, defaulting to the URI"
                    )
            values["mongodb.username"] = uri_username
            values["mongodb.password"] = uri_password

        try:
            return cls.model_validate(values)
        except pydantic.ValidationError as e:
            raise ConfigurationError(f"Invalid binding configuration: {e}") from e

    # --- Derived settings ---

    @property
    def encryption_mode(self) -> EncryptionMode:
        if self.use_fle:
            return EncryptionMode.Legacy
        if self.use_qe:
            return EncryptionMode.Queryable
        return EncryptionMode.Disabled

    @property
    def endpoints(self) -> List[str]:
        return split_endpoints(self.url)

    @property
    def pool_size(self) -> int:
        if self.encryption_mode.enabled:
            return self.thread_count * ENCRYPTED_POOL_FACTOR
        return self.thread_count

    @property
    def namespace(self) -> str:
        return f"{self.database}.{self.collection}"

    @property
    def key_vault_namespace(self) -> str:
        # Same database as the data, the admin database is slow
        return f"{self.database}.datakeys"

    def client_options(self) -> Dict[str, Any]:
        """Keyword options applied to every `MongoClient` of the pool."""
        options: Dict[str, Any] = {
            "maxPoolSize": self.pool_size,
            "readPreference": self.read_preference.driver_mode,
        }
        options.update(self.write_concern.client_options())
        return options

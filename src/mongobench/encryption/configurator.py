"""
Encryption Configurator.

Prepares client-side field encryption for the connection pool: provisions the
data key, builds the legacy schema or the Queryable Encryption metadata,
creates the backing collection when needed (optionally sharded) and returns
the `AutoEncryptionOpts` attached to the first endpoint of the pool.
"""

from typing import Any, Callable, Dict, Optional

from bson import Binary
from bson.binary import UuidRepresentation
from bson.codec_options import CodecOptions
from pymongo import MongoClient
from pymongo.encryption import ClientEncryption
from pymongo.encryption_options import AutoEncryptionOpts
from pymongo.errors import CollectionInvalid, OperationFailure

from ..config import BindingConfig
from ..enum import EncryptionMode
from ..helpers import _fatal, ensure_mongodb_scheme
from ..logging_config import get_logger
from .key_vault import DataKeyProvider, kms_providers
from .schema import generate_encrypted_fields, generate_remote_schema, generate_schema

logger = get_logger(__name__)

KEY_VAULT_COLLECTION = "datakeys"


class EncryptionConfigurator:
    """
    Builds the automatic encryption settings for one binding configuration.

    Important: Setup Only
        The configurator runs once, inside the guarded initialization of the
        shared binding context. Its store calls (key lookup, collection
        listing and creation, sharding commands) are not repeated by later
        workers.
    """

    def __init__(
        self,
        config: BindingConfig,
        *,
        client_factory: Callable[..., Any] = MongoClient,
        client_encryption_factory: Callable[..., Any] = ClientEncryption,
        auto_encryption_opts_factory: Callable[..., Any] = AutoEncryptionOpts,
    ):
        if not config.encryption_mode.enabled:
            raise ValueError("EncryptionConfigurator requires an encryption mode")
        self._config = config
        self._client_factory = client_factory
        self._client_encryption_factory = client_encryption_factory
        self._auto_encryption_opts_factory = auto_encryption_opts_factory

    def _extra_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {"mongocryptd_bypass_spawn": True}
        if self._config.use_crypt_shared_lib:
            options["crypt_shared_lib_path"] = self._config.crypt_shared_lib_path
            options["crypt_shared_lib_required"] = True
        return options

    def build(self, url: str) -> Any:
        """
        Provisions the data key and the collection metadata for `url`.

        Args:
            url: The (credential-embedded) URL of the first endpoint.

        Returns:
            AutoEncryptionOpts: The options for the encrypted `MongoClient`.
        """
        cfg = self._config
        key_vault_url = ensure_mongodb_scheme(url)

        key_vault_client = self._client_factory(
            key_vault_url,
            uuidRepresentation="standard",
            **cfg.write_concern.client_options(),
            readPreference=cfg.read_preference.driver_mode,
        )
        client_encryption = self._client_encryption_factory(
            kms_providers(),
            cfg.key_vault_namespace,
            key_vault_client,
            CodecOptions(uuid_representation=UuidRepresentation.STANDARD),
        )
        try:
            key_id = DataKeyProvider(
                key_collection=key_vault_client[cfg.database][KEY_VAULT_COLLECTION],
                client_encryption=client_encryption,
            ).get_or_create()

            if cfg.encryption_mode == EncryptionMode.Queryable:
                return self._build_queryable(key_vault_client, key_id)
            return self._build_legacy(key_vault_client, key_id)
        finally:
            client_encryption.close()
            key_vault_client.close()

    def _build_legacy(self, client: Any, key_id: Binary) -> Any:
        cfg = self._config
        schema = generate_schema(key_id, cfg.num_encrypted_fields, cfg.datatype)

        if cfg.remote_schema:
            self._create_validated_collection(client, key_id)

        logger.info(
            f"Legacy field level encryption enabled on '{cfg.namespace}' "
            f"for {cfg.num_encrypted_fields} fields"
        )
        return self._auto_encryption_opts_factory(
            kms_providers(),
            cfg.key_vault_namespace,
            schema_map={cfg.namespace: schema},
            **self._extra_options(),
        )

    def _create_validated_collection(self, client: Any, key_id: Binary) -> None:
        """
        Validates the legacy schema server side through a `$jsonSchema`.

        A creation failure is fatal during the load phase; in the run phase the
        collection already holds documents and the failure is ignored.
        """
        cfg = self._config
        db = client[cfg.database]
        try:
            db.create_collection(
                cfg.collection,
                validator=generate_remote_schema(
                    key_id, cfg.num_encrypted_fields, cfg.datatype
                ),
            )
        except (CollectionInvalid, OperationFailure) as e:
            if db[cfg.collection].estimated_document_count() <= 0:
                _fatal(f"Failed to create collection '{cfg.collection}'", e)
            logger.warning(
                f"Collection '{cfg.collection}' already holds data, keeping its validator: '{e}'"
            )

    def _build_queryable(self, client: Any, key_id: Binary) -> Any:
        cfg = self._config
        encrypted_fields_map: Optional[Dict[str, Any]] = None

        if cfg.collection not in client[cfg.database].list_collection_names():
            encrypted_fields = generate_encrypted_fields(
                key_id,
                cfg.num_encrypted_fields,
                cfg.datatype,
                cfg.contention_factors,
            )
            encrypted_fields_map = {cfg.namespace: encrypted_fields}

            # Also creates the auxiliary state collections and the
            # __safeContent__ index needed by equality queries
            client[cfg.database].create_collection(
                cfg.collection, encryptedFields=encrypted_fields
            )
            logger.info(f"Created queryable encrypted collection '{cfg.namespace}'")

            if cfg.sharded:
                client.admin.command("enableSharding", cfg.database)
                client.admin.command(
                    "shardCollection", cfg.namespace, key={"_id": "hashed"}
                )
                logger.info(f"Sharded '{cfg.namespace}' on hashed '_id'")
        else:
            logger.debug(f"Collection '{cfg.namespace}' already exists")

        return self._auto_encryption_opts_factory(
            kms_providers(),
            cfg.key_vault_namespace,
            encrypted_fields_map=encrypted_fields_map,
            **self._extra_options(),
        )

import pytest
from bson import Int64

from mongobench.config import BindingConfig
from mongobench.encryption import EncryptionConfigurator
from testing.fakes import FakeClientEncryption, fake_auto_encryption_opts


def _configurator(store, **properties):
    return EncryptionConfigurator(
        BindingConfig.from_properties(properties),
        client_factory=store.client_factory,
        client_encryption_factory=FakeClientEncryption,
        auto_encryption_opts_factory=fake_auto_encryption_opts,
    )


def test_requires_encryption_mode(store):
    with pytest.raises(ValueError):
        EncryptionConfigurator(BindingConfig.from_properties({}))


def test_legacy_builds_schema_map(store):
    opts = _configurator(
        store, **{"mongodb.fle": "true", "mongodb.numFleFields": "2"}
    ).build("host:27017")

    assert opts["key_vault_namespace"] == "ycsb.datakeys"
    assert opts["mongocryptd_bypass_spawn"] is True
    schema = opts["schema_map"]["ycsb.usertable"]
    assert list(schema["properties"]) == ["field0", "field1"]
    # no collection created without remote schema
    assert store.database("ycsb").created == []
    # key vault client gets the mongodb scheme, and is closed after setup
    assert store.clients[0].url == "mongodb://host:27017"
    assert store.clients[0].options["uuidRepresentation"] == "standard"
    assert store.clients[0].closed


def test_crypt_shared_lib_options(store):
    opts = _configurator(
        store,
        **{
            "mongodb.fle": "true",
            "mongodb.useCryptSharedLib": "true",
            "mongodb.cryptSharedLibPath": "/opt/mongo_crypt_v1.so",
        },
    ).build("mongodb://host")
    assert opts["crypt_shared_lib_path"] == "/opt/mongo_crypt_v1.so"
    assert opts["crypt_shared_lib_required"] is True


def test_remote_schema_creates_validated_collection(store):
    _configurator(
        store, **{"mongodb.fle": "true", "mongodb.remote_schema": "true"}
    ).build("mongodb://host")

    coll = store.database("ycsb")["usertable"]
    assert "$jsonSchema" in coll.options["validator"]


def test_remote_schema_failure_on_empty_collection_is_fatal(store):
    store.database("ycsb").create_collection("usertable")
    with pytest.raises(SystemExit) as exc_info:
        _configurator(
            store, **{"mongodb.fle": "true", "mongodb.remote_schema": "true"}
        ).build("mongodb://host")
    assert exc_info.value.code == 1


def test_remote_schema_failure_with_data_is_ignored(store):
    store.database("ycsb")["usertable"].insert_one({"_id": "user1"})
    opts = _configurator(
        store, **{"mongodb.fle": "true", "mongodb.remote_schema": "true"}
    ).build("mongodb://host")
    assert "ycsb.usertable" in opts["schema_map"]


def test_queryable_creates_collection(store):
    opts = _configurator(
        store,
        **{
            "mongodb.qe": "true",
            "mongodb.numFleFields": "3",
            "mongodb.contentionFactors": "2",
        },
    ).build("mongodb://host")

    coll = store.database("ycsb")["usertable"]
    encrypted_fields = coll.options["encryptedFields"]
    assert [f["path"] for f in encrypted_fields["fields"]] == [
        "field0",
        "field1",
        "field2",
    ]
    assert encrypted_fields["fields"][0]["queries"][0]["contention"] == Int64(2)
    assert opts["encrypted_fields_map"] == {"ycsb.usertable": encrypted_fields}
    assert store.commands == []


def test_queryable_shards_new_collection(store):
    _configurator(
        store, **{"mongodb.qe": "true", "mongodb.sharded": "true"}
    ).build("mongodb://host")

    assert store.commands == [
        ("admin", ("enableSharding", "ycsb"), {}),
        ("admin", ("shardCollection", "ycsb.usertable"), {"key": {"_id": "hashed"}}),
    ]


def test_queryable_skips_existing_collection(store):
    store.database("ycsb").create_collection("usertable")
    opts = _configurator(
        store, **{"mongodb.qe": "true", "mongodb.sharded": "true"}
    ).build("mongodb://host")

    assert opts["encrypted_fields_map"] is None
    assert store.database("ycsb")["usertable"].options == {}
    assert store.commands == []


def test_key_shared_between_runs(store):
    _configurator(store, **{"mongodb.qe": "true"}).build("mongodb://host")
    _configurator(store, **{"mongodb.qe": "true"}).build("mongodb://host")
    assert len(FakeClientEncryption.created_keys) == 1

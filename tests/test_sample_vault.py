"""Tests for the sample vault connector."""

import httpx
import pytest

from vault_connector.connectors import (
    ConnectorError,
    InvalidAttributeValueError,
    InvalidCredentialError,
    MissingKeyError,
    OperationTimeoutError,
    SampleVaultConnector,
    SecretRequest,
    VaultConfigData,
)

STORAGE_KEY = "MyADConnector~#~abcd215"


def _config(payload) -> VaultConfigData:
    return VaultConfigData.model_validate(payload)


def _request(attributes, values) -> SecretRequest:
    return SecretRequest.model_validate(
        {"vaultConnectionAttributes": attributes, "encryptedConnAttr": values}
    )


class TestPutSecret:
    """Tests for storing secrets."""

    def test_stores_under_prefixed_key(
        self, sample_connector, sample_vault, vault_attributes, password_mapping
    ):
        """PASSWORD is stored under connectionName~#~keyName."""
        result = sample_connector.put_secret(
            _config(password_mapping),
            _request(vault_attributes, {"PASSWORD": "password@1234"}),
        )

        assert result.to_payload() == {"status": "success"}
        assert sample_vault.secrets == {STORAGE_KEY: "password@1234"}

    def test_ignore_mapping_stores_under_key_name(
        self, sample_connector, sample_vault, vault_attributes
    ):
        """keyName in ignoreMapping is used without the connection prefix."""
        config = _config(
            {
                "connectionName": "MyADConnector",
                "keyMapping": {
                    "PASSWORD": {
                        "keyName": "abcd215",
                        "encryptionmechanism": "None",
                        "ignoreMapping": ["keyName"],
                    }
                },
            }
        )

        sample_connector.put_secret(
            config, _request(vault_attributes, {"PASSWORD": "password@1234"})
        )

        assert sample_vault.secrets == {"abcd215": "password@1234"}

    def test_overwrites_existing_value(
        self, sample_connector, sample_vault, vault_attributes, password_mapping
    ):
        """A second put replaces the stored value."""
        sample_vault.secrets[STORAGE_KEY] = "old"

        sample_connector.put_secret(
            _config(password_mapping),
            _request(vault_attributes, {"PASSWORD": "new"}),
        )

        assert sample_vault.secrets[STORAGE_KEY] == "new"

    def test_none_value_rejected(
        self, sample_connector, sample_vault, vault_attributes, password_mapping
    ):
        """A put without a value is rejected before contacting the vault."""
        with pytest.raises(InvalidAttributeValueError, match="PASSWORD"):
            sample_connector.put_secret(
                _config(password_mapping),
                _request(vault_attributes, {"PASSWORD": None}),
            )

        assert sample_vault.requests == []

    def test_unmapped_attribute_rejected(
        self, sample_connector, sample_vault, vault_attributes, password_mapping
    ):
        """Every attribute must have a keyMapping entry."""
        with pytest.raises(InvalidAttributeValueError) as exc_info:
            sample_connector.put_secret(
                _config(password_mapping),
                _request(vault_attributes, {"PASSWORD": "x", "API_TOKEN": "y"}),
            )

        assert exc_info.value.keys == ["API_TOKEN"]
        assert sample_vault.secrets == {}

    def test_missing_connection_attributes_rejected(
        self, sample_connector, sample_vault, vault_attributes, password_mapping
    ):
        """Blank or absent connection attributes are all named in the error."""
        del vault_attributes["KEY_URL"]
        vault_attributes["username"] = "  "

        with pytest.raises(InvalidAttributeValueError) as exc_info:
            sample_connector.put_secret(
                _config(password_mapping),
                _request(vault_attributes, {"PASSWORD": "x"}),
            )

        assert "username" in str(exc_info.value)
        assert "KEY_URL" in str(exc_info.value)
        assert sample_vault.requests == []

    def test_invalid_credentials(
        self, sample_connector, sample_vault, vault_attributes, password_mapping
    ):
        """A rejected login raises InvalidCredentialError without retrying."""
        vault_attributes["password"] = "wrong"

        with pytest.raises(InvalidCredentialError):
            sample_connector.put_secret(
                _config(password_mapping),
                _request(vault_attributes, {"PASSWORD": "x"}),
            )

        assert sample_vault.requests == [("POST", "/session/auth")]
        assert sample_vault.secrets == {}

    def test_timeout_is_not_retried(
        self, sample_connector, sample_vault, vault_attributes, password_mapping
    ):
        """Writes are attempted once; a timeout raises OperationTimeoutError."""
        sample_vault.unreachable = httpx.ConnectTimeout

        with pytest.raises(OperationTimeoutError):
            sample_connector.put_secret(
                _config(password_mapping),
                _request(vault_attributes, {"PASSWORD": "x"}),
            )

        assert len(sample_vault.requests) == 1


class TestPutRollback:
    """Tests for multi-key atomicity."""

    @pytest.fixture
    def three_keys(self):
        return _config(
            {
                "connectionName": "conn",
                "keyMapping": {
                    "A": {"keyName": "a", "encryptionmechanism": "None"},
                    "B": {"keyName": "b", "encryptionmechanism": "None"},
                    "C": {"keyName": "c", "encryptionmechanism": "None"},
                },
            }
        )

    def test_failure_restores_previous_values(
        self, sample_connector, sample_vault, vault_attributes, three_keys
    ):
        """Keys written before the failure are restored or removed."""
        sample_vault.secrets["conn~#~a"] = "old-a"
        sample_vault.fail_put_keys.add("conn~#~c")

        with pytest.raises(ConnectorError) as exc_info:
            sample_connector.put_secret(
                three_keys,
                _request(vault_attributes, {"A": "new-a", "B": "new-b", "C": "new-c"}),
            )

        assert sample_vault.secrets == {"conn~#~a": "old-a"}
        assert exc_info.value.keys == ["conn~#~c"]
        assert "'C'" in str(exc_info.value)

    def test_failed_rollback_is_reported(
        self, sample_connector, sample_vault, vault_attributes, three_keys
    ):
        """Keys that cannot be restored are named in the error."""
        sample_vault.secrets["conn~#~a"] = "old-a"
        sample_vault.secrets["conn~#~b"] = "old-b"
        sample_vault.fail_put_keys.add("conn~#~b")

        with pytest.raises(ConnectorError) as exc_info:
            sample_connector.put_secret(
                three_keys,
                _request(vault_attributes, {"A": "new-a", "B": "new-b", "C": "new-c"}),
            )

        # B failed to write and its restore fails too; A is restored
        assert sample_vault.secrets == {"conn~#~a": "old-a", "conn~#~b": "old-b"}
        assert exc_info.value.keys == ["conn~#~b"]
        assert "Could not roll back: conn~#~b" in str(exc_info.value)

    def test_session_released_after_failure(
        self, sample_connector, sample_vault, vault_attributes, three_keys
    ):
        """The vault session ends even when the write fails."""
        sample_vault.fail_put_keys.add("conn~#~b")

        with pytest.raises(ConnectorError):
            sample_connector.put_secret(
                three_keys,
                _request(vault_attributes, {"A": "1", "B": "2", "C": "3"}),
            )

        assert sample_vault.sessions == set()
        assert sample_vault.requests[-1] == ("DELETE", "/session/auth")


class TestGetSecret:
    """Tests for fetching secrets."""

    def test_fetches_value(
        self, sample_connector, sample_vault, vault_attributes, password_mapping
    ):
        """getSecret returns the value stored under the prefixed key."""
        sample_vault.secrets[STORAGE_KEY] = "password@1234"

        result = sample_connector.get_secret(
            _config(password_mapping),
            _request(vault_attributes, {"PASSWORD": None}),
        )

        assert result.to_payload() == {
            "encryptedConnAttr": {"PASSWORD": "password@1234"},
            "status": "success",
        }

    def test_round_trip(
        self, sample_connector, vault_attributes, password_mapping
    ):
        """A value stored by put_secret is returned by get_secret."""
        sample_connector.put_secret(
            _config(password_mapping),
            _request(vault_attributes, {"PASSWORD": "s3cr3t"}),
        )

        result = sample_connector.get_secret(
            _config(password_mapping),
            _request(vault_attributes, {"PASSWORD": None}),
        )

        assert result.encrypted_conn_attr == {"PASSWORD": "s3cr3t"}

    def test_missing_key(
        self, sample_connector, vault_attributes, password_mapping
    ):
        """A key absent from the vault raises MissingKeyError naming it."""
        with pytest.raises(MissingKeyError) as exc_info:
            sample_connector.get_secret(
                _config(password_mapping),
                _request(vault_attributes, {"PASSWORD": None}),
            )

        assert exc_info.value.keys == [STORAGE_KEY]
        assert STORAGE_KEY in str(exc_info.value)

    def test_timeout_after_retries(
        self, sample_connector, sample_vault, vault_attributes, password_mapping
    ):
        """Reads are retried before OperationTimeoutError is raised."""
        sample_vault.unreachable = httpx.ConnectTimeout

        with pytest.raises(OperationTimeoutError):
            sample_connector.get_secret(
                _config(password_mapping),
                _request(vault_attributes, {"PASSWORD": None}),
            )

        # max_retries=2 in the fixture
        assert len(sample_vault.requests) == 3

    def test_unreachable_vault(
        self, sample_connector, sample_vault, vault_attributes, password_mapping
    ):
        """A refused connection is a generic connector error."""
        sample_vault.unreachable = httpx.ConnectError

        with pytest.raises(ConnectorError) as exc_info:
            sample_connector.get_secret(
                _config(password_mapping),
                _request(vault_attributes, {"PASSWORD": None}),
            )

        assert not isinstance(exc_info.value, OperationTimeoutError)
        assert "Could not reach vault" in str(exc_info.value)

    def test_transient_errors_retried(
        self, sample_connector, sample_vault, vault_attributes, password_mapping
    ):
        """A read answered with 503 succeeds once the vault recovers."""
        sample_vault.secrets[STORAGE_KEY] = "password@1234"
        sample_vault.flaky_gets = 2

        result = sample_connector.get_secret(
            _config(password_mapping),
            _request(vault_attributes, {"PASSWORD": None}),
        )

        assert result.encrypted_conn_attr == {"PASSWORD": "password@1234"}

    def test_session_released(
        self, sample_connector, sample_vault, vault_attributes, password_mapping
    ):
        """Every call logs out of the vault."""
        sample_vault.secrets[STORAGE_KEY] = "v"

        sample_connector.get_secret(
            _config(password_mapping),
            _request(vault_attributes, {"PASSWORD": None}),
        )

        assert sample_vault.sessions == set()

    def test_keys_are_url_encoded(
        self, sample_connector, sample_vault, vault_attributes, password_mapping
    ):
        """The separator is sent percent-encoded and decoded by the vault."""
        sample_vault.secrets[STORAGE_KEY] = "v"

        sample_connector.get_secret(
            _config(password_mapping),
            _request(vault_attributes, {"PASSWORD": None}),
        )

        assert ("GET", f"/keys/{STORAGE_KEY}") in sample_vault.key_requests()


class TestConnectivity:
    """Tests for the test callback."""

    def test_authenticates_only(self, sample_connector, sample_vault, vault_attributes):
        """Connectivity checks never read or write keys."""
        sample_vault.secrets["existing"] = "value"

        result = sample_connector.test_connectivity(vault_attributes)

        assert result.status is True
        assert sample_vault.secrets == {"existing": "value"}
        assert sample_vault.key_requests() == []
        assert sample_vault.sessions == set()

    def test_bad_credentials(self, sample_connector, vault_attributes):
        """Rejected credentials surface as InvalidCredentialError."""
        vault_attributes["username"] = "someone@else.com"

        with pytest.raises(InvalidCredentialError):
            sample_connector.test_connectivity(vault_attributes)


class TestRemapConfiguration:
    """Tests for dataFormatting."""

    def test_normalized_mapping_unchanged(self, sample_connector, password_mapping):
        """Already normalized mappings return None."""
        assert sample_connector.remap_configuration(_config(password_mapping)) is None

    def test_trims_and_canonicalizes(self, sample_connector):
        """Whitespace is trimmed and ignoreMapping names canonicalized."""
        config = _config(
            {
                "connectionName": "conn",
                "keyMapping": {
                    "PASSWORD": {
                        "keyName": " abcd215 ",
                        "encryptionmechanism": "None",
                        "ignoreMapping": ["keyname", "KEYNAME"],
                    }
                },
            }
        )

        remapped = sample_connector.remap_configuration(config)

        entry = remapped.key_mapping["PASSWORD"]
        assert entry.key_name == "abcd215"
        assert entry.ignore_mapping == ["keyName"]
        assert remapped.connection_name == "conn"

    def test_key_name_wins_over_same_named_extra(
        self, sample_connector, sample_vault, vault_attributes
    ):
        """An extra field spelled like keyName does not take over its exemption."""
        config = _config(
            {
                "connectionName": "conn",
                "keyMapping": {
                    "PASSWORD": {
                        "keyName": "abcd215",
                        "keyname": "legacy",
                        "ignoreMapping": ["KEYNAME"],
                    }
                },
            }
        )

        remapped = sample_connector.remap_configuration(config)

        assert remapped.key_mapping["PASSWORD"].ignore_mapping == ["keyName"]

        sample_connector.put_secret(
            remapped, _request(vault_attributes, {"PASSWORD": "password@1234"})
        )

        assert sample_vault.secrets == {"abcd215": "password@1234"}

    def test_idempotent(self, sample_connector):
        """Remapping a remapped configuration changes nothing."""
        config = _config(
            {
                "keyMapping": {
                    "PASSWORD": {"keyName": "k ", "folder": " ad ", "ignoreMapping": ["FOLDER"]}
                }
            }
        )

        remapped = sample_connector.remap_configuration(config)

        assert remapped.key_mapping["PASSWORD"].extra_fields == {"folder": "ad"}
        assert remapped.key_mapping["PASSWORD"].ignore_mapping == ["folder"]
        assert sample_connector.remap_configuration(remapped) is None


class TestDescribeConfiguration:
    """Tests for setVaultConfig."""

    def test_declares_sample_vault_attributes(self):
        """All five attributes are required and password is encrypted."""
        config = SampleVaultConnector().describe_configuration()

        assert config.connection_attributes == [
            "AUTH_URL",
            "username",
            "password",
            "ACCOUNT_URL",
            "KEY_URL",
        ]
        assert config.encrypted_attributes == ["password"]
        assert set(config.required_attributes) == set(config.connection_attributes)

    def test_returned_configuration_is_independent(
        self, sample_connector, vault_attributes
    ):
        """Changing a returned configuration does not affect later calls."""
        config = SampleVaultConnector().describe_configuration()
        config.required_attributes.append("EXTRA")
        config.attribute_descriptions["EXTRA"] = "extra"

        fresh = SampleVaultConnector().describe_configuration()
        assert "EXTRA" not in fresh.required_attributes
        assert "EXTRA" not in fresh.attribute_descriptions
        assert sample_connector.test_connectivity(vault_attributes).status is True

"""Pydantic models for vault connectors.

Defines the payloads exchanged with the governance host: the connection
configuration a provider declares, the per-attribute key mappings, the
request carrying connection attributes and secret values, and the results
returned from each callback.

Field aliases follow the host's JSON names (``keyMapping``,
``encryptedConnAttr``...) while Python code uses snake_case attributes.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)

# Separator the host places between the connection name and a mapping value
CONNECTION_NAME_SEPARATOR = "~#~"


class EncryptionMechanism(str, Enum):
    """How the host encodes a secret before handing it to the connector."""

    NONE = "None"
    ENCRYPTED = "Encrypted"
    BASE64 = "Base64"

    @classmethod
    def _missing_(cls, value: object) -> "EncryptionMechanism | None":
        # Older host releases send lower-case mechanism names
        if isinstance(value, str):
            for member in cls:
                if member.value.lower() == value.strip().lower():
                    return member
        return None


class OperationStatus(str, Enum):
    """Outcome reported back to the host."""

    SUCCESS = "success"
    FAILURE = "failure"


class ConnectionConfig(BaseModel):
    """Attributes the host must collect from an operator for a connection.

    Returned by ``describe_configuration``. The host renders one field per
    connection attribute, stores encrypted attributes in the vault and
    refuses to save a connection while a required attribute is blank.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    connection_attributes: list[str] = Field(
        default_factory=list, alias="connectionAttributes"
    )
    encrypted_attributes: list[str] = Field(
        default_factory=list, alias="encryptedAttributes"
    )
    required_attributes: list[str] = Field(
        default_factory=list, alias="requiredAttributes"
    )
    attribute_descriptions: dict[str, str] = Field(
        default_factory=dict, alias="attributeDescriptions"
    )

    @model_validator(mode="after")
    def check_declared(self) -> "ConnectionConfig":
        """Encrypted, required and described attributes must be declared."""
        declared = set(self.connection_attributes)
        for label, names in (
            ("encrypted", self.encrypted_attributes),
            ("required", self.required_attributes),
            ("described", list(self.attribute_descriptions)),
        ):
            unknown = [name for name in names if name not in declared]
            if unknown:
                raise ValueError(
                    f"{label} attributes are not connection attributes: "
                    f"{', '.join(unknown)}"
                )
        return self


class KeyMappingEntry(BaseModel):
    """Where and how one encrypted attribute is stored in the vault.

    ``keyName`` and ``encryptionmechanism`` are always present in host
    payloads. Any additional mapping attribute configured on the host
    (a ``path`` or ``folder`` for example) is kept in ``extra_fields``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    key_name: str = Field(..., min_length=1, alias="keyName")
    encryption_mechanism: EncryptionMechanism = Field(
        default=EncryptionMechanism.NONE,
        validation_alias=AliasChoices(
            "encryptionmechanism", "encryptionMechanism", "encryption_mechanism"
        ),
        serialization_alias="encryptionmechanism",
    )
    ignore_mapping: list[str] = Field(default_factory=list, alias="ignoreMapping")

    @property
    def extra_fields(self) -> dict[str, Any]:
        """Additional mapping attributes beyond the framework's own."""
        return dict(self.model_extra or {})

    def to_payload(self) -> dict[str, Any]:
        """Serialize using the host's field names."""
        payload: dict[str, Any] = {
            "keyName": self.key_name,
            "encryptionmechanism": self.encryption_mechanism.value,
        }
        if self.ignore_mapping:
            payload["ignoreMapping"] = list(self.ignore_mapping)
        payload.update(self.extra_fields)
        return payload


class VaultConfigData(BaseModel):
    """Key mappings for every encrypted attribute of one connection."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    key_mapping: dict[str, KeyMappingEntry] = Field(
        default_factory=dict, alias="keyMapping"
    )
    connection_name: str | None = Field(default=None, alias="connectionName")

    def to_payload(self) -> dict[str, Any]:
        """Serialize using the host's field names."""
        payload: dict[str, Any] = {
            "keyMapping": {
                name: entry.to_payload() for name, entry in self.key_mapping.items()
            }
        }
        if self.connection_name is not None:
            payload["connectionName"] = self.connection_name
        return payload


class SecretRequest(BaseModel):
    """The ``data`` parameter of setSecret/getSecret.

    ``vaultConnectionAttributes`` carries what is needed to reach the vault.
    ``encryptedConnAttr`` maps each logical attribute to the value to store
    (setSecret) or to null (getSecret).
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    vault_connection_attributes: dict[str, Any] = Field(
        default_factory=dict,
        validation_alias=AliasChoices(
            "vaultConnectionAttributes",
            # Spelling used by the host's own documentation
            "vaultConnectionAtributes",
            "vault_connection_attributes",
        ),
    )
    encrypted_conn_attr: dict[str, str | None] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("encryptedConnAttr", "encrypted_conn_attr"),
    )


class OperationResult(BaseModel):
    """Result of setSecret/getSecret."""

    status: OperationStatus = OperationStatus.SUCCESS
    encrypted_conn_attr: dict[str, str | None] | None = None

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the map the host expects."""
        payload: dict[str, Any] = {}
        if self.encrypted_conn_attr is not None:
            payload["encryptedConnAttr"] = dict(self.encrypted_conn_attr)
        payload["status"] = self.status.value
        return payload


class ConnectivityResult(BaseModel):
    """Result of testing connectivity to a vault."""

    status: bool
    message: str = ""
    latency_ms: float | None = None

    def to_payload(self) -> dict[str, Any]:
        """Serialize to the map the host expects."""
        return {"status": self.status, "message": self.message}


class ProviderInfo(BaseModel):
    """Information about a registered secret provider."""

    name: str
    version: str
    description: str
    configuration: ConnectionConfig

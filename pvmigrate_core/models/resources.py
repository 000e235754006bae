# coding=utf-8
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class TerminalStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class ResourceHandle:
    """Identifies one object created in a cluster."""
    kube: Any = field(compare=False, repr=False)
    kind: str = ""
    namespace: str = ""
    name: str = ""

    def __str__(self):
        return f"{self.kind} {self.namespace}/{self.name}"


@dataclass(frozen=True)
class CredentialPair:
    algorithm: str
    public_key: str
    private_key: str = field(repr=False)


@dataclass(frozen=True)
class AccessGrant:
    namespace: str
    instance_id: str
    service_account: str
    role: str
    role_binding: str


@dataclass(frozen=True)
class Endpoint:
    host: str
    port: int

    def __str__(self):
        return f"{self.host}:{self.port}"

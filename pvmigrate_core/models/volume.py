# coding=utf-8
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple


ACCESS_MODE_RWO = "ReadWriteOnce"
ACCESS_MODE_RWOP = "ReadWriteOncePod"
ACCESS_MODE_ROX = "ReadOnlyMany"
ACCESS_MODE_RWX = "ReadWriteMany"

EXCLUSIVE_ACCESS_MODES = [ACCESS_MODE_RWO, ACCESS_MODE_RWOP]


@dataclass(frozen=True)
class VolumeReference:
    """A claim as named by the operator, before any cluster lookup."""
    kube: Any
    namespace: str
    name: str

    def __str__(self):
        return f"{self.namespace}/{self.name}"


@dataclass(frozen=True)
class VolumeDescriptor:
    kube: Any = field(compare=False, repr=False)
    cluster: str = ""
    namespace: str = ""
    name: str = ""
    access_mode: str = ACCESS_MODE_RWO
    mounted_node: Optional[str] = None
    node_affinity: Tuple[str, ...] = ()

    @property
    def exclusive(self) -> bool:
        return self.access_mode in EXCLUSIVE_ACCESS_MODES

    @property
    def mounted(self) -> bool:
        return self.mounted_node is not None

    def same_cluster(self, other: "VolumeDescriptor") -> bool:
        return self.cluster == other.cluster

    def same_namespace(self, other: "VolumeDescriptor") -> bool:
        return self.same_cluster(other) and self.namespace == other.namespace

    def __str__(self):
        return f"{self.cluster}:{self.namespace}/{self.name}"

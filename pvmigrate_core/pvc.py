# coding=utf-8
import logging

from kubernetes.client import ApiException

from pvmigrate_core.exceptions import ResolutionError
from pvmigrate_core.models.volume import ACCESS_MODE_RWO, EXCLUSIVE_ACCESS_MODES, VolumeDescriptor

logger = logging.getLogger(__name__)

HOSTNAME_LABEL = "kubernetes.io/hostname"


def _find_mounted_node(kube, namespace, claim_name):
    pods = kube.core_v1.list_namespaced_pod(namespace=namespace).items
    for pod in pods:
        if pod.status and pod.status.phase not in ["Pending", "Running"]:
            continue
        for volume in pod.spec.volumes or []:
            source = volume.persistent_volume_claim
            if source and source.claim_name == claim_name:
                return pod.metadata.name, pod.spec.node_name
    return None, None


def _node_affinity(kube, volume_name):
    """Hostnames the bound volume is pinned to, empty when unconstrained."""
    if not volume_name:
        return ()
    pv = kube.core_v1.read_persistent_volume(name=volume_name)
    affinity = pv.spec.node_affinity
    if not affinity or not affinity.required:
        return ()

    hostnames = []
    for term in affinity.required.node_selector_terms or []:
        for expr in term.match_expressions or []:
            if expr.key == HOSTNAME_LABEL and expr.operator == "In":
                hostnames.extend(expr.values or [])
    return tuple(sorted(set(hostnames)))


def resolve(ref, ignore_mounted=False):
    """Looks up a claim and the facts strategies decide on."""
    kube = ref.kube
    try:
        claim = kube.core_v1.read_namespaced_persistent_volume_claim(name=ref.name, namespace=ref.namespace)
    except ApiException as e:
        if e.status == 404:
            raise ResolutionError(f"persistent volume claim {ref} not found") from e
        raise ResolutionError(f"failed to read persistent volume claim {ref}: {e.status} {e.reason}") from e

    phase = claim.status.phase if claim.status else None
    if phase != "Bound":
        raise ResolutionError(f"persistent volume claim {ref} is not bound (phase: {phase})")

    modes = claim.spec.access_modes or [ACCESS_MODE_RWO]
    try:
        pod_name, mounted_node = _find_mounted_node(kube, ref.namespace, ref.name)
        node_affinity = _node_affinity(kube, claim.spec.volume_name)
    except ApiException as e:
        raise ResolutionError(f"failed to inspect persistent volume claim {ref}: {e.status} {e.reason}") from e

    if pod_name:
        if not ignore_mounted:
            raise ResolutionError(f"persistent volume claim {ref} is mounted by pod '{pod_name}' "
                                  f"on node '{mounted_node}', pass --ignore-mounted to proceed anyway")
        logger.warning(f"persistent volume claim {ref} is mounted by pod '{pod_name}' on node '{mounted_node}'")

    if mounted_node and node_affinity and mounted_node not in node_affinity:
        raise ResolutionError(f"persistent volume claim {ref} is mounted on node '{mounted_node}' "
                              f"which is outside its volume node affinity {list(node_affinity)}")

    return VolumeDescriptor(
        kube=kube,
        cluster=kube.cluster_id,
        namespace=ref.namespace,
        name=ref.name,
        access_mode=next((m for m in modes if m not in EXCLUSIVE_ACCESS_MODES), modes[0]),
        mounted_node=mounted_node,
        node_affinity=node_affinity,
    )

import pytest
from kubernetes.client import ApiException

from pvmigrate_core import pvc
from pvmigrate_core.exceptions import ResolutionError
from pvmigrate_core.models.volume import ACCESS_MODE_RWO, ACCESS_MODE_RWX, VolumeReference
from pvmigrate_core.test import fakes


def _kube(claim=None, pods=(), hostnames=()):
    kube = fakes.kube_client()
    kube.core_v1.read_namespaced_persistent_volume_claim.return_value = claim or fakes.claim()
    kube.core_v1.list_namespaced_pod.return_value = fakes.items(*pods)
    kube.core_v1.read_persistent_volume.return_value = fakes.persistent_volume(hostnames)
    return kube


def test_resolve():
    kube = _kube(hostnames=["node-1"])
    volume = pvc.resolve(VolumeReference(kube, "ns1", "data"))

    assert volume.cluster == "https://cluster-a:6443"
    assert volume.namespace == "ns1"
    assert volume.name == "data"
    assert volume.access_mode == ACCESS_MODE_RWO
    assert volume.exclusive
    assert not volume.mounted
    assert volume.node_affinity == ("node-1",)
    kube.core_v1.read_persistent_volume.assert_called_once_with(name="pv-1")


def test_resolve_prefers_shareable_access_mode():
    kube = _kube(claim=fakes.claim(access_modes=[ACCESS_MODE_RWO, ACCESS_MODE_RWX]))
    volume = pvc.resolve(VolumeReference(kube, "ns1", "data"))
    assert volume.access_mode == ACCESS_MODE_RWX
    assert not volume.exclusive


@pytest.mark.parametrize('status', [404, 403])
def test_resolve_read_fails(status):
    kube = _kube()
    kube.core_v1.read_namespaced_persistent_volume_claim.side_effect = ApiException(status=status, reason="x")
    with pytest.raises(ResolutionError):
        pvc.resolve(VolumeReference(kube, "ns1", "data"))


@pytest.mark.parametrize('phase', ["Pending", "Lost"])
def test_resolve_not_bound(phase):
    kube = _kube(claim=fakes.claim(phase=phase))
    with pytest.raises(ResolutionError) as exc_info:
        pvc.resolve(VolumeReference(kube, "ns1", "data"))
    assert phase in exc_info.value.message


def test_resolve_mounted():
    kube = _kube(pods=[fakes.pod(name="app", node_name="node-1", claims=["data"])])
    with pytest.raises(ResolutionError) as exc_info:
        pvc.resolve(VolumeReference(kube, "ns1", "data"))
    assert "app" in exc_info.value.message


def test_resolve_mounted_ignored():
    kube = _kube(pods=[fakes.pod(name="other", node_name="node-2", claims=["other"]),
                       fakes.pod(name="app", node_name="node-1", claims=["data"])])
    volume = pvc.resolve(VolumeReference(kube, "ns1", "data"), ignore_mounted=True)
    assert volume.mounted
    assert volume.mounted_node == "node-1"


def test_resolve_skips_finished_pods():
    kube = _kube(pods=[fakes.pod(name="done", phase="Succeeded", node_name="node-1", claims=["data"])])
    volume = pvc.resolve(VolumeReference(kube, "ns1", "data"))
    assert not volume.mounted


def test_resolve_mounted_outside_node_affinity():
    kube = _kube(pods=[fakes.pod(name="app", node_name="node-9", claims=["data"])],
                 hostnames=["node-1", "node-2"])
    with pytest.raises(ResolutionError):
        pvc.resolve(VolumeReference(kube, "ns1", "data"), ignore_mounted=True)

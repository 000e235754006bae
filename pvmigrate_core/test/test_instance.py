from unittest.mock import call, patch

from pvmigrate_core.exceptions import WaitTimeoutError
from pvmigrate_core.instance import MigrationInstance
from pvmigrate_core.models.resources import ResourceHandle
from pvmigrate_core.test import fakes


def _handles(kube):
    return [ResourceHandle(kube=kube, kind=kind, namespace="ns1", name=f"pv-migrate-{component}-abc12345")
            for kind, component in [("Secret", "sshd-key"), ("Pod", "sshd"), ("Service", "sshd-svc")]]


def test_service_account_is_owned_by_the_attempt():
    cluster = fakes.FakeCluster()
    instance = MigrationInstance("abc12345")
    attempt = instance.new_attempt("mnt2")

    assert attempt.service_account(cluster, "ns1", create_policy=True) == "pv-migrate-access-abc12345"
    assert [h.kind for h in attempt.handles] == ["ServiceAccount", "Role", "RoleBinding"]

    attempt.cleanup(timeout=1, interval=0)

    assert attempt.handles == []
    assert cluster.objects == {}
    # the next attempt of the same instance can grant again
    assert instance.new_attempt("svc").service_account(cluster, "ns1", True)


def test_service_account_without_policy_creates_nothing():
    cluster = fakes.FakeCluster()
    attempt = MigrationInstance("abc12345").new_attempt("mnt2")
    assert attempt.service_account(cluster, "ns1", create_policy=False) == "default"
    assert attempt.handles == []


@patch("pvmigrate_core.lifecycle.wait_until_deleted")
@patch("pvmigrate_core.lifecycle.delete", return_value=True)
def test_cleanup_deletes_newest_first_then_waits(delete, wait_deleted):
    kube = fakes.kube_client()
    attempt = MigrationInstance("abc12345").new_attempt("svc")
    handles = _handles(kube)
    for handle in handles:
        attempt.track(handle)

    attempt.cleanup(timeout=30, interval=1)

    assert delete.call_args_list == [call(h) for h in reversed(handles)]
    assert wait_deleted.call_args_list == [call(h, timeout=30, interval=1) for h in reversed(handles)]


@patch("pvmigrate_core.lifecycle.wait_until_deleted")
@patch("pvmigrate_core.lifecycle.delete", side_effect=[True, False, True])
def test_cleanup_skips_waiting_for_failed_deletes(delete, wait_deleted):
    kube = fakes.kube_client()
    attempt = MigrationInstance("abc12345").new_attempt("svc")
    handles = _handles(kube)
    for handle in handles:
        attempt.track(handle)

    attempt.cleanup(timeout=30, interval=1)

    assert [c.args[0] for c in wait_deleted.call_args_list] == [handles[2], handles[0]]


@patch("pvmigrate_core.lifecycle.wait_until_deleted", side_effect=[WaitTimeoutError("stuck"), None])
@patch("pvmigrate_core.lifecycle.delete", return_value=True)
def test_cleanup_survives_objects_that_never_go_away(delete, wait_deleted):
    kube = fakes.kube_client()
    attempt = MigrationInstance("abc12345").new_attempt("svc")
    attempt.track(_handles(kube)[0])
    attempt.track(_handles(kube)[1])

    attempt.cleanup(timeout=30, interval=1)

    assert wait_deleted.call_count == 2


def test_cleanup_waits_out_terminating_pods():
    cluster = fakes.FakeCluster(linger={"pod": 2})
    attempt = MigrationInstance("abc12345").new_attempt("svc")
    for handle in _handles(cluster):
        attempt.create(cluster, "ns1", {"kind": handle.kind, "metadata": {"name": handle.name, "labels": {}},
                                        "spec": {}})

    attempt.cleanup(timeout=5, interval=0)

    assert cluster.objects == {}

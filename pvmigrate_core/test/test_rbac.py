import pytest
from kubernetes.client import ApiException

from pvmigrate_core import rbac
from pvmigrate_core.exceptions import ProvisioningError
from pvmigrate_core.test import fakes


def test_ensure_shared_policy_is_idempotent():
    kube = fakes.kube_client()
    kube.custom = fakes.FakeCustomObjects()

    rbac.ensure_shared_policy(kube)
    rbac.ensure_shared_policy(kube)

    assert list(kube.custom.objects) == [("policy", "podsecuritypolicies", "pv-migrate")]
    body = kube.custom.objects[("policy", "podsecuritypolicies", "pv-migrate")]
    assert body["kind"] == "PodSecurityPolicy"
    assert body["apiVersion"] == "policy/v1beta1"


def test_ensure_shared_policy_rejected():
    kube = fakes.kube_client()
    kube.custom.create_cluster_custom_object.side_effect = ApiException(status=403, reason="Forbidden")
    with pytest.raises(ProvisioningError) as exc_info:
        rbac.ensure_shared_policy(kube)
    assert exc_info.value.step == rbac.STEP_POLICY


def test_grant_access():
    kube = fakes.kube_client()
    grant = rbac.grant_access(kube, "abc12345", "ns1")

    name = "pv-migrate-access-abc12345"
    assert grant.namespace == "ns1"
    assert grant.service_account == grant.role == grant.role_binding == name

    sa = kube.core_v1.create_namespaced_service_account.call_args.kwargs["body"]
    assert sa["metadata"]["labels"]["pv-migrate.io/instance"] == "abc12345"

    role = kube.rbac_v1.create_namespaced_role.call_args.kwargs["body"]
    assert role["rules"] == [{
        "apiGroups": ["policy"],
        "resources": ["podsecuritypolicies"],
        "resourceNames": ["pv-migrate"],
        "verbs": ["use"],
    }]

    binding = kube.rbac_v1.create_namespaced_role_binding.call_args.kwargs["body"]
    assert binding["roleRef"]["name"] == name
    assert binding["subjects"][0]["name"] == name
    assert binding["subjects"][0]["namespace"] == "ns1"


@pytest.mark.parametrize('api,method,step', [
    ("core_v1", "create_namespaced_service_account", rbac.STEP_SERVICE_ACCOUNT),
    ("rbac_v1", "create_namespaced_role", rbac.STEP_ROLE),
    ("rbac_v1", "create_namespaced_role_binding", rbac.STEP_ROLE_BINDING),
])
def test_grant_access_step_failure(api, method, step):
    kube = fakes.kube_client()
    getattr(getattr(kube, api), method).side_effect = ApiException(status=403, reason="Forbidden")

    with pytest.raises(ProvisioningError) as exc_info:
        rbac.grant_access(kube, "abc12345", "ns1")

    assert exc_info.value.step == step
    assert exc_info.value.message.startswith(f"{step}: ")


def test_grant_access_stops_at_failed_step():
    kube = fakes.kube_client()
    kube.rbac_v1.create_namespaced_role.side_effect = ApiException(status=403, reason="Forbidden")
    with pytest.raises(ProvisioningError):
        rbac.grant_access(kube, "abc12345", "ns1")
    kube.rbac_v1.create_namespaced_role_binding.assert_not_called()
    kube.core_v1.delete_namespaced_service_account.assert_not_called()


def test_grant_access_reports_each_created_object():
    kube = fakes.FakeCluster()
    created = []
    rbac.grant_access(kube, "abc12345", "ns1", on_created=created.append)

    name = "pv-migrate-access-abc12345"
    assert [(h.kind, h.namespace, h.name) for h in created] == [
        ("ServiceAccount", "ns1", name), ("Role", "ns1", name), ("RoleBinding", "ns1", name)]
    assert all(h.kube is kube for h in created)


def test_grant_access_reports_objects_created_before_a_failure():
    kube = fakes.kube_client()
    kube.rbac_v1.create_namespaced_role.side_effect = ApiException(status=403, reason="Forbidden")
    created = []
    with pytest.raises(ProvisioningError):
        rbac.grant_access(kube, "abc12345", "ns1", on_created=created.append)
    assert [h.kind for h in created] == ["ServiceAccount"]


def test_grant_access_twice_conflicts():
    kube = fakes.FakeCluster()
    rbac.grant_access(kube, "abc12345", "ns1")
    with pytest.raises(ProvisioningError) as exc_info:
        rbac.grant_access(kube, "abc12345", "ns1")
    assert exc_info.value.step == rbac.STEP_SERVICE_ACCOUNT
    assert "409" in exc_info.value.message


def test_service_account_for_without_policy():
    kube = fakes.kube_client()
    assert rbac.service_account_for(kube, "abc12345", "ns1", create_policy=False) == "default"
    assert kube.method_calls == []


def test_service_account_for_with_policy():
    kube = fakes.kube_client()
    assert rbac.service_account_for(kube, "abc12345", "ns1", create_policy=True) == "pv-migrate-access-abc12345"

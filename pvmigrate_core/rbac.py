# coding=utf-8
import logging

from kubernetes.client import ApiException

from pvmigrate_core import constants, lifecycle, utils
from pvmigrate_core.exceptions import CreationError, ProvisioningError
from pvmigrate_core.models.resources import AccessGrant

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_ACCOUNT = "default"

STEP_POLICY = "pod security policy"
STEP_SERVICE_ACCOUNT = "service account"
STEP_ROLE = "role"
STEP_ROLE_BINDING = "role binding"


def ensure_shared_policy(kube):
    """Creates the cluster wide pod security policy every instance binds to.

    The policy is shared between concurrent migrations and never deleted by
    one of them, so a conflict simply means another run got there first.
    """
    body = lifecycle.render_manifest(
        "pod_security_policy.yaml.j2",
        NAME=constants.PSP_NAME,
        PSP_GROUP=constants.PSP_GROUP,
        PSP_VERSION=constants.PSP_VERSION,
    )
    try:
        kube.custom.create_cluster_custom_object(
            group=constants.PSP_GROUP,
            version=constants.PSP_VERSION,
            plural=constants.PSP_PLURAL,
            body=body,
        )
        logger.info(f"PodSecurityPolicy created: '{constants.PSP_NAME}'")
    except ApiException as e:
        if e.status == 409:
            logger.debug(f"PodSecurityPolicy '{constants.PSP_NAME}' already exists")
            return
        raise ProvisioningError(STEP_POLICY, f"{e.status} {e.reason}") from e


def _create(step, kube, namespace, template, on_created=None, **values):
    try:
        handle = lifecycle.create(kube, namespace, lifecycle.render_manifest(template, **values))
    except CreationError as e:
        raise ProvisioningError(step, e.message) from e
    if on_created:
        on_created(handle)
    return handle


def grant_access(kube, instance_id, namespace, on_created=None):
    """Creates the service account, role and binding for one namespace.

    on_created receives every handle as soon as it exists, so a grant that
    fails half way still leaves its owner knowing what to delete.
    """
    ensure_shared_policy(kube)

    name = utils.resource_name(constants.COMPONENT_ACCESS, instance_id)
    labels = utils.component_labels(instance_id, constants.COMPONENT_ACCESS)
    common = dict(NAME=name, NAMESPACE=namespace, LABELS=labels)

    _create(STEP_SERVICE_ACCOUNT, kube, namespace, "service_account.yaml.j2", on_created, **common)
    _create(STEP_ROLE, kube, namespace, "role.yaml.j2", on_created,
            PSP_GROUP=constants.PSP_GROUP, PSP_PLURAL=constants.PSP_PLURAL, PSP_NAME=constants.PSP_NAME,
            **common)
    _create(STEP_ROLE_BINDING, kube, namespace, "role_binding.yaml.j2", on_created,
            SERVICE_ACCOUNT=name, ROLE=name, **common)

    return AccessGrant(namespace=namespace, instance_id=instance_id,
                       service_account=name, role=name, role_binding=name)


def service_account_for(kube, instance_id, namespace, create_policy, on_created=None):
    if not create_policy:
        return DEFAULT_SERVICE_ACCOUNT
    return grant_access(kube, instance_id, namespace, on_created=on_created).service_account

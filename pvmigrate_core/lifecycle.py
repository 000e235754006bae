# coding=utf-8
import logging
import time

import yaml
from jinja2 import Environment, PackageLoader
from kubernetes.client import ApiException, V1DeleteOptions

from pvmigrate_core import constants, utils
from pvmigrate_core.exceptions import CreationError, StrategyExecutionError, WaitTimeoutError, WatchError
from pvmigrate_core.models.resources import ResourceHandle, TerminalStatus

logger = logging.getLogger(__name__)

# kind -> (api group attribute on KubeClient, method suffix)
KINDS = {
    "Pod": ("core_v1", "namespaced_pod"),
    "Job": ("batch_v1", "namespaced_job"),
    "Service": ("core_v1", "namespaced_service"),
    "Secret": ("core_v1", "namespaced_secret"),
    "ServiceAccount": ("core_v1", "namespaced_service_account"),
    "Role": ("rbac_v1", "namespaced_role"),
    "RoleBinding": ("rbac_v1", "namespaced_role_binding"),
}

# deletion order for the label sweep, workloads before what they depend on
SWEEP_ORDER = ["Job", "Pod", "Service", "Secret", "RoleBinding", "Role", "ServiceAccount"]

_env = Environment(loader=PackageLoader('pvmigrate_core', 'templates'), trim_blocks=True, lstrip_blocks=True)


def render_manifest(template_name, **values):
    template = _env.get_template(template_name)
    return yaml.safe_load(template.render(values))


def _api_method(kube, kind, verb):
    if kind not in KINDS:
        raise ValueError(f"unsupported resource kind: {kind}")
    group, suffix = KINDS[kind]
    return getattr(getattr(kube, group), f"{verb}_{suffix}")


def create(kube, namespace, manifest):
    kind = manifest["kind"]
    name = manifest["metadata"]["name"]
    create_fn = _api_method(kube, kind, "create")
    try:
        create_fn(namespace=namespace, body=manifest)
    except ApiException as e:
        raise CreationError(f"failed to create {kind} {namespace}/{name}: {e.status} {e.reason}") from e
    logger.info(f"{kind} created: '{name}' in namespace '{namespace}'")
    return ResourceHandle(kube=kube, kind=kind, namespace=namespace, name=name)


def read(handle):
    read_fn = _api_method(handle.kube, handle.kind, "read")
    try:
        return read_fn(name=handle.name, namespace=handle.namespace)
    except ApiException as e:
        raise WatchError(f"failed to read {handle}: {e.status} {e.reason}") from e


def _pod_ready(pod):
    phase = pod.status.phase if pod.status else None
    if phase in ["Succeeded", "Failed"]:
        raise StrategyExecutionError(f"pod '{pod.metadata.name}' terminated with phase {phase} before becoming ready")
    if phase != "Running":
        return False
    statuses = pod.status.container_statuses or []
    return bool(statuses) and all(s.ready for s in statuses)


def _job_ready(job):
    status = job.status
    return bool(status and (status.active or status.succeeded or status.failed))


_READY_PREDICATES = {
    "Pod": _pod_ready,
    "Job": _job_ready,
}


def _job_terminal(job):
    status = job.status
    if status is None:
        return None
    if status.succeeded and status.succeeded >= 1:
        return TerminalStatus.SUCCEEDED
    if status.failed and status.failed > 0:
        return TerminalStatus.FAILED
    for condition in status.conditions or []:
        if condition.type == "Failed" and condition.status == "True":
            return TerminalStatus.FAILED
    return None


def _pod_terminal(pod):
    phase = pod.status.phase if pod.status else None
    if phase == "Succeeded":
        return TerminalStatus.SUCCEEDED
    if phase == "Failed":
        return TerminalStatus.FAILED
    return None


_TERMINAL_STATES = {
    "Job": _job_terminal,
    "Pod": _pod_terminal,
}


def _poll(handle, check, timeout, interval, waiting_for):
    deadline = time.monotonic() + timeout
    while True:
        result = check(read(handle))
        if result:
            return result
        if time.monotonic() >= deadline:
            raise WaitTimeoutError(f"timed out after {timeout}s waiting for {handle} to {waiting_for}")
        logger.debug(f"{handle} not yet {waiting_for}, waiting...")
        time.sleep(interval)


def wait_until_ready(handle, timeout=constants.POD_READY_TIMEOUT_SEC, interval=constants.POLL_INTERVAL_SEC):
    predicate = _READY_PREDICATES.get(handle.kind, lambda obj: obj is not None)
    logger.info(f"Waiting for {handle} to become ready")
    _poll(handle, predicate, timeout, interval, "become ready")
    logger.info(f"{handle} is ready")


def wait_until_terminal(handle, timeout=constants.JOB_COMPLETION_TIMEOUT_SEC, interval=constants.POLL_INTERVAL_SEC):
    if handle.kind not in _TERMINAL_STATES:
        raise ValueError(f"{handle.kind} has no terminal state")
    logger.info(f"Waiting for {handle} to complete")
    status = _poll(handle, _TERMINAL_STATES[handle.kind], timeout, interval, "complete")
    if status == TerminalStatus.FAILED:
        raise StrategyExecutionError(f"{handle} failed")
    logger.info(f"{handle} completed successfully")
    return status


# jobs stay readable until their pods are gone
_PROPAGATION = {
    "Job": "Foreground",
}


def delete(handle):
    """Issues the delete, returns whether there is anything left to wait for."""
    delete_fn = _api_method(handle.kube, handle.kind, "delete")
    try:
        delete_fn(name=handle.name, namespace=handle.namespace,
                  body=V1DeleteOptions(propagation_policy=_PROPAGATION.get(handle.kind, 'Background')))
        logger.info(f"{handle.kind} deleted: '{handle.name}' in namespace '{handle.namespace}'")
        return True
    except ApiException as e:
        if e.status == 404:
            logger.debug(f"{handle} already gone")
        else:
            logger.warning(f"Failed to delete {handle}: {e.status} {e.reason}")
        return False


def wait_until_deleted(handle, timeout=constants.DELETION_TIMEOUT_SEC, interval=constants.POLL_INTERVAL_SEC):
    read_fn = _api_method(handle.kube, handle.kind, "read")
    deadline = time.monotonic() + timeout
    while True:
        try:
            read_fn(name=handle.name, namespace=handle.namespace)
        except ApiException as e:
            if e.status == 404:
                logger.debug(f"{handle} is gone")
                return
            raise WatchError(f"failed to read {handle}: {e.status} {e.reason}") from e
        if time.monotonic() >= deadline:
            raise WaitTimeoutError(f"timed out after {timeout}s waiting for {handle} to be deleted")
        logger.debug(f"{handle} still terminating, waiting...")
        time.sleep(interval)


def delete_labeled(kube, namespace, instance_id):
    """Removes everything an instance left in a namespace, whoever created it."""
    selector = utils.instance_selector(instance_id)
    for kind in SWEEP_ORDER:
        list_fn = _api_method(kube, kind, "list")
        try:
            items = list_fn(namespace=namespace, label_selector=selector).items
        except ApiException as e:
            logger.warning(f"Failed to list {kind} in namespace '{namespace}': {e.status} {e.reason}")
            continue
        for item in items:
            delete(ResourceHandle(kube=kube, kind=kind, namespace=namespace, name=item.metadata.name))

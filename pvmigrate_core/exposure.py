# coding=utf-8
import logging
import time
from enum import Enum

from kubernetes.client import ApiException

from pvmigrate_core import constants, lifecycle, utils
from pvmigrate_core.exceptions import CreationError, ExposureError, WaitTimeoutError, WatchError
from pvmigrate_core.models.resources import Endpoint

logger = logging.getLogger(__name__)


class ExposureMode(str, Enum):
    CLUSTER_INTERNAL = "cluster-internal"
    NODE_LOCAL = "node-local"
    EXTERNALLY_ROUTABLE = "externally-routable"


SERVICE_TYPES = {
    ExposureMode.CLUSTER_INTERNAL: "ClusterIP",
    ExposureMode.NODE_LOCAL: "NodePort",
    ExposureMode.EXTERNALLY_ROUTABLE: "LoadBalancer",
}

# preferred node address types for node-local exposure, most reachable first
NODE_ADDRESS_TYPES = ["ExternalIP", "InternalIP", "Hostname"]


def expose(kube, namespace, instance_id, selector, mode):
    """Publishes the ssh port of the pods matching selector."""
    try:
        service_type = SERVICE_TYPES[ExposureMode(mode)]
    except ValueError:
        raise ExposureError(f"unknown exposure mode: {mode}") from None

    manifest = lifecycle.render_manifest(
        "service.yaml.j2",
        NAME=utils.resource_name(constants.COMPONENT_SSHD_SVC, instance_id),
        NAMESPACE=namespace,
        LABELS=utils.component_labels(instance_id, constants.COMPONENT_SSHD_SVC),
        SERVICE_TYPE=service_type,
        SELECTOR=selector,
        SSH_PORT=constants.SSH_PORT,
    )
    try:
        return lifecycle.create(kube, namespace, manifest)
    except CreationError as e:
        raise ExposureError(f"cannot expose {mode} service: {e.message}") from e


def _cluster_internal_address(service):
    if not service.spec.cluster_ip:
        return None
    return Endpoint(host=f"{service.metadata.name}.{service.metadata.namespace}", port=constants.SSH_PORT)


def _external_address(service):
    lb = service.status.load_balancer if service.status else None
    for ingress in (lb.ingress if lb else None) or []:
        host = ingress.ip or ingress.hostname
        if host:
            return Endpoint(host=host, port=constants.SSH_PORT)
    return None


def _node_port(service):
    for port in service.spec.ports or []:
        if port.node_port:
            return port.node_port
    return None


def _node_address(kube, service):
    node_port = _node_port(service)
    if not node_port:
        return None

    selector = ",".join(f"{k}={v}" for k, v in (service.spec.selector or {}).items())
    try:
        pods = kube.core_v1.list_namespaced_pod(namespace=service.metadata.namespace, label_selector=selector).items
        node_name = next((p.spec.node_name for p in pods if p.spec.node_name), None)
        if not node_name:
            return None
        node = kube.core_v1.read_node(name=node_name)
    except ApiException as e:
        raise WatchError(f"failed to look up the node behind service '{service.metadata.name}': {e.status} {e.reason}") from e

    addresses = {a.type: a.address for a in (node.status.addresses or [])}
    for address_type in NODE_ADDRESS_TYPES:
        if addresses.get(address_type):
            return Endpoint(host=addresses[address_type], port=node_port)
    raise ExposureError(f"node '{node_name}' reports no usable address")


def _load_balancer_failure(kube, service):
    """The message of a warning event saying no load balancer could be provisioned, if any."""
    selector = f"involvedObject.kind=Service,involvedObject.name={service.metadata.name}"
    try:
        events = kube.core_v1.list_namespaced_event(namespace=service.metadata.namespace,
                                                    field_selector=selector).items
    except ApiException as e:
        logger.debug(f"Cannot list events of service '{service.metadata.name}': {e.status} {e.reason}")
        return None
    for event in events:
        if event.type == "Warning" and event.reason in constants.LB_FAILURE_EVENT_REASONS:
            return event.message or event.reason
    return None


def resolve_address(handle, mode, timeout=constants.ADDRESS_TIMEOUT_SEC, interval=constants.POLL_INTERVAL_SEC):
    mode = ExposureMode(mode)
    if mode == ExposureMode.CLUSTER_INTERNAL:
        resolve = _cluster_internal_address
    elif mode == ExposureMode.EXTERNALLY_ROUTABLE:
        def resolve(service):
            endpoint = _external_address(service)
            if endpoint:
                return endpoint
            failure = _load_balancer_failure(handle.kube, service)
            if failure:
                raise ExposureError(f"no load balancer for {handle}: {failure}")
            return None
    else:
        def resolve(service):
            return _node_address(handle.kube, service)

    logger.info(f"Waiting for an address to be assigned to {handle}")
    deadline = time.monotonic() + timeout
    while True:
        endpoint = resolve(lifecycle.read(handle))
        if endpoint:
            logger.info(f"{handle} is reachable at {endpoint}")
            return endpoint
        if time.monotonic() >= deadline:
            raise WaitTimeoutError(f"no {mode.value} address assigned to {handle} after {timeout}s")
        time.sleep(interval)

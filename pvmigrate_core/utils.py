# coding=utf-8
import logging
import os
import random
import string
import sys

from kubernetes import client, config

from pvmigrate_core import constants
from pvmigrate_core.exceptions import ConfigurationError
from pvmigrate_core.k8s_client import KubeClient


logger = logging.getLogger(__name__)


def get_logger(name=""):
    # first configure a root logger
    logging.getLogger("urllib3.connectionpool").setLevel(logging.WARNING)
    logg = logging.getLogger()

    log_level = os.getenv(constants.LOG_LEVEL_ENV_VAR)
    log_level = log_level.upper() if log_level else constants.LOG_LEVEL

    try:
        logg.setLevel(log_level)
    except ValueError as e:
        logg.warning(f'Invalid {constants.LOG_LEVEL_ENV_VAR}: {str(e)}')
        logg.setLevel(constants.LOG_LEVEL)

    if not logg.hasHandlers():
        logger_handler = logging.StreamHandler(stream=sys.stdout)
        logger_handler.setFormatter(logging.Formatter('%(asctime)s: %(levelname)s: %(message)s'))
        logg.addHandler(logger_handler)

    if name:
        logg = logging.getLogger(f"root.{name}")
        logg.propagate = True

    return logg


def generate_instance_id(length=constants.INSTANCE_ID_LENGTH):
    # kubernetes object names must start with a letter and be lowercase
    first = random.choice(string.ascii_lowercase)
    rest = random.choices(string.ascii_lowercase + string.digits, k=length - 1)
    return first + "".join(rest)


def resource_name(component, instance_id):
    return f"{constants.RESOURCE_PREFIX}-{component}-{instance_id}"


def component_labels(instance_id, component):
    return {
        constants.LABEL_APP: constants.RESOURCE_PREFIX,
        constants.LABEL_INSTANCE: instance_id,
        constants.LABEL_COMPONENT: component,
    }


def instance_selector(instance_id, component=None):
    selector = f"{constants.LABEL_INSTANCE}={instance_id}"
    if component:
        selector += f",{constants.LABEL_COMPONENT}={component}"
    return selector


def _in_cluster_namespace():
    if os.path.exists(constants.IN_CLUSTER_NAMESPACE_FILE):
        with open(constants.IN_CLUSTER_NAMESPACE_FILE, 'r') as f:
            namespace = f.read().strip()
            if namespace:
                return namespace
    return constants.DEFAULT_NAMESPACE


def _context_namespace(kubeconfig, context):
    contexts, active = config.list_kube_config_contexts(config_file=kubeconfig)
    selected = active
    if context:
        selected = next((c for c in contexts if c["name"] == context), None)
    if not selected:
        return constants.DEFAULT_NAMESPACE
    return (selected.get("context") or {}).get("namespace") or constants.DEFAULT_NAMESPACE


def get_k8s_client(kubeconfig=None, context=None):
    """Builds a client for one cluster.

    An explicit kubeconfig or context always wins; without either the
    in-cluster service account is tried before the default kubeconfig.
    The client's namespace is the one its context (or service account)
    works in.
    """
    if not kubeconfig and not context:
        try:
            config.load_incluster_config()
            return KubeClient(client.ApiClient(), name="in-cluster", namespace=_in_cluster_namespace())
        except config.ConfigException:
            logger.debug("Not running inside a cluster, using kubeconfig")

    try:
        api_client = config.new_client_from_config(config_file=kubeconfig, context=context)
        namespace = _context_namespace(kubeconfig, context)
    except (config.ConfigException, OSError) as e:
        source = kubeconfig or "the default kubeconfig"
        where = f"context '{context}' of {source}" if context else source
        raise ConfigurationError(f"cannot load {where}: {e}") from e
    return KubeClient(api_client, name=context or "", namespace=namespace)

import logging
import os
SCRIPT_PATH = os.path.dirname(os.path.realpath(__file__))


def get_from_env_var_file(name, default=None):
    if not name:
        return False
    with open(f"{SCRIPT_PATH}/env_var", "r", encoding="utf-8") as fh:
        for line in fh.readlines():
            if line.startswith(name):
                return line.split("=", 1)[1].strip()
    return default


LOG_LEVEL = logging.INFO
LOG_LEVEL_ENV_VAR = "PV_MIGRATE_LOG_LEVEL"

PV_MIGRATE_CLI_NAME = get_from_env_var_file(
        "PV_MIGRATE_COMMAND_NAME", "pv-migrate")
PV_MIGRATE_VERSION = get_from_env_var_file(
        "PV_MIGRATE_VERSION", "0")
DEFAULT_RSYNC_IMAGE = get_from_env_var_file(
        "PV_MIGRATE_RSYNC_IMAGE", "ghcr.io/pv-migrate/pv-migrate-rsync:latest")
DEFAULT_SSHD_IMAGE = get_from_env_var_file(
        "PV_MIGRATE_SSHD_IMAGE", "docker.io/utkuozdemir/pv-migrate-sshd:1.0.0")

# object naming and labels
RESOURCE_PREFIX = "pv-migrate"
LABEL_APP = "app.kubernetes.io/name"
LABEL_INSTANCE = "pv-migrate.io/instance"
LABEL_COMPONENT = "pv-migrate.io/component"
INSTANCE_ID_LENGTH = 8

COMPONENT_RSYNC = "rsync"
COMPONENT_RSYNC_KEY = "rsync-key"
COMPONENT_SSHD = "sshd"
COMPONENT_SSHD_KEY = "sshd-key"
COMPONENT_SSHD_SVC = "sshd-svc"
COMPONENT_ACCESS = "access"

# shared, cluster scoped pod security policy
PSP_NAME = "pv-migrate"
PSP_GROUP = "policy"
PSP_VERSION = "v1beta1"
PSP_PLURAL = "podsecuritypolicies"

# key generation
KEY_ALGORITHM_ED25519 = "ed25519"
KEY_ALGORITHM_RSA = "rsa"
KEY_ALGORITHMS = [KEY_ALGORITHM_ED25519, KEY_ALGORITHM_RSA]
DEFAULT_KEY_ALGORITHM = KEY_ALGORITHM_ED25519
RSA_KEY_SIZE = 4096

# transfer protocol
RSYNC_MAX_RETRIES = 10
RSYNC_RETRY_INTERVAL_SEC = 5
SSH_CONNECT_TIMEOUT_SEC = 5
SSH_PORT = 22
SOURCE_MOUNT_PATH = "/source"
DEST_MOUNT_PATH = "/dest"
SSH_KEY_DIR = "/root/.ssh"
RSYNC_COMMAND_NAME = "pv-migrate-rsync"

# workloads
JOB_BACKOFF_LIMIT = 0
JOB_TTL_SEC = 600
KEY_FILE_MODE = 0o400

# waiting
POLL_INTERVAL_SEC = 2
POD_READY_TIMEOUT_SEC = 60*5
ADDRESS_TIMEOUT_SEC = 60*5
JOB_COMPLETION_TIMEOUT_SEC = 60*60*12
DELETION_TIMEOUT_SEC = 60*2

# load balancer provisioning failures reported as service events
LB_FAILURE_EVENT_REASONS = ["SyncLoadBalancerFailed", "LoadBalancerFailed"]

# namespace used when neither the command line nor the kubeconfig context names one
DEFAULT_NAMESPACE = "default"
IN_CLUSTER_NAMESPACE_FILE = "/var/run/secrets/kubernetes.io/serviceaccount/namespace"

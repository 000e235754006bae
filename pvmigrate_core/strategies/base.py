# coding=utf-8
"""
Base class of the transfer strategies

A strategy is one way of moving bytes between two claims. The engine asks
each candidate whether the topology allows it before executing it.
"""
from abc import ABC, abstractmethod

from pvmigrate_core import constants, lifecycle, transfer


class Strategy(ABC):

    name = ""

    @abstractmethod
    def is_applicable(self, request) -> bool:
        """Decides from resolved volume facts only, without touching the cluster."""
        raise NotImplementedError("Subclasses must implement is_applicable")

    @abstractmethod
    def execute(self, attempt, request) -> None:
        """Runs the transfer, raising a StrategyError subclass on failure.

        Every object created goes through the attempt so it is deleted when
        the attempt ends, successful or not.
        """
        raise NotImplementedError("Subclasses must implement execute")

    def __repr__(self):
        return f"{self.__class__.__name__}({self.name})"


def pinned_node(volume):
    """The node a workload using this volume must run on, if any."""
    if volume.exclusive and volume.mounted:
        return volume.mounted_node
    return None


def rsync_job_manifest(attempt, request, namespace, service_account, node_name=None, source_claim=None,
                       endpoint=None, private_key_secret=None):
    opts = request.options
    key_file = None
    if private_key_secret:
        key_file = f"{constants.SSH_KEY_DIR}/id_{opts.key_algorithm}"
    command = transfer.build_command_args(
        delete_extraneous_files=opts.delete_extraneous_files,
        preserve_ownership=opts.preserve_ownership,
        endpoint=endpoint,
        key_file=key_file,
    )
    return lifecycle.render_manifest(
        "rsync_job.yaml.j2",
        NAME=attempt.name(constants.COMPONENT_RSYNC),
        NAMESPACE=namespace,
        LABELS=attempt.labels(constants.COMPONENT_RSYNC),
        BACKOFF_LIMIT=constants.JOB_BACKOFF_LIMIT,
        TTL_SECONDS=constants.JOB_TTL_SEC,
        SERVICE_ACCOUNT=service_account,
        NODE_NAME=node_name,
        SOURCE_CLAIM=source_claim,
        DEST_CLAIM=request.dest.name,
        PRIVATE_KEY_SECRET=private_key_secret,
        KEY_FILE_MODE=constants.KEY_FILE_MODE,
        KEY_ALGORITHM=opts.key_algorithm,
        IMAGE=opts.rsync_image,
        COMMAND=command,
        SOURCE_MOUNT_PATH=constants.SOURCE_MOUNT_PATH,
        DEST_MOUNT_PATH=constants.DEST_MOUNT_PATH,
        SSH_KEY_DIR=constants.SSH_KEY_DIR,
    )


def run_rsync_job(attempt, kube, namespace, manifest, options):
    job = attempt.create(kube, namespace, manifest)
    return lifecycle.wait_until_terminal(job, timeout=options.job_timeout, interval=options.poll_interval)

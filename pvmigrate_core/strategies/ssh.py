# coding=utf-8
import logging
from concurrent.futures import ThreadPoolExecutor

from pvmigrate_core import constants, exposure, keys, lifecycle
from pvmigrate_core.exposure import ExposureMode
from pvmigrate_core.strategies.base import Strategy, pinned_node, rsync_job_manifest, run_rsync_job

logger = logging.getLogger(__name__)


class SshStrategy(Strategy):
    """Serves the source over sshd and pulls it with rsync from the destination side.

    Subclasses only differ in how the sshd pod is exposed.
    """

    exposure_mode = ExposureMode.CLUSTER_INTERNAL

    def _service_accounts(self, attempt, request):
        source, dest, opts = request.source, request.dest, request.options
        if source.same_namespace(dest):
            service_account = attempt.service_account(
                dest.kube, dest.namespace, opts.source_create_policy or opts.dest_create_policy)
            return service_account, service_account

        with ThreadPoolExecutor(max_workers=2) as executor:
            source_sa = executor.submit(attempt.service_account, source.kube, source.namespace,
                                        opts.source_create_policy)
            dest_sa = executor.submit(attempt.service_account, dest.kube, dest.namespace,
                                      opts.dest_create_policy)
            return source_sa.result(), dest_sa.result()

    def _start_sshd(self, attempt, request, service_account, public_key):
        source, opts = request.source, request.options
        secret = attempt.create(source.kube, source.namespace, lifecycle.render_manifest(
            "secret.yaml.j2",
            NAME=attempt.name(constants.COMPONENT_SSHD_KEY),
            NAMESPACE=source.namespace,
            LABELS=attempt.labels(constants.COMPONENT_SSHD_KEY),
            KEY="publicKey",
            VALUE=public_key,
        ))
        pod = attempt.create(source.kube, source.namespace, lifecycle.render_manifest(
            "sshd_pod.yaml.j2",
            NAME=attempt.name(constants.COMPONENT_SSHD),
            NAMESPACE=source.namespace,
            LABELS=attempt.labels(constants.COMPONENT_SSHD),
            SERVICE_ACCOUNT=service_account,
            NODE_NAME=pinned_node(source),
            SOURCE_CLAIM=source.name,
            PUBLIC_KEY_SECRET=secret.name,
            KEY_FILE_MODE=constants.KEY_FILE_MODE,
            IMAGE=opts.sshd_image,
            SSH_PORT=constants.SSH_PORT,
            SOURCE_MOUNT_PATH=constants.SOURCE_MOUNT_PATH,
            SSH_KEY_DIR=constants.SSH_KEY_DIR,
        ))
        lifecycle.wait_until_ready(pod, timeout=opts.pod_ready_timeout, interval=opts.poll_interval)
        return pod

    def execute(self, attempt, request):
        source, dest, opts = request.source, request.dest, request.options
        source_sa, dest_sa = self._service_accounts(attempt, request)

        logger.info("Generating SSH key pair")
        credentials = keys.generate(opts.key_algorithm)

        self._start_sshd(attempt, request, source_sa, credentials.public_key)

        selector = {
            constants.LABEL_INSTANCE: attempt.instance_id,
            constants.LABEL_COMPONENT: constants.COMPONENT_SSHD,
        }
        service = attempt.track(exposure.expose(
            source.kube, source.namespace, attempt.instance_id, selector, self.exposure_mode))
        endpoint = exposure.resolve_address(
            service, self.exposure_mode, timeout=opts.address_timeout, interval=opts.poll_interval)

        logger.info("Creating secret for the private key")
        key_secret = attempt.create(dest.kube, dest.namespace, lifecycle.render_manifest(
            "secret.yaml.j2",
            NAME=attempt.name(constants.COMPONENT_RSYNC_KEY),
            NAMESPACE=dest.namespace,
            LABELS=attempt.labels(constants.COMPONENT_RSYNC_KEY),
            KEY="privateKey",
            VALUE=credentials.private_key,
        ))

        logger.info(f"Connecting to the rsync server at {endpoint}")
        manifest = rsync_job_manifest(attempt, request, dest.namespace, dest_sa,
                                      node_name=pinned_node(dest), endpoint=endpoint,
                                      private_key_secret=key_secret.name)
        run_rsync_job(attempt, dest.kube, dest.namespace, manifest, opts)


class SvcStrategy(SshStrategy):
    name = "svc"
    exposure_mode = ExposureMode.CLUSTER_INTERNAL

    def is_applicable(self, request):
        return request.source.same_cluster(request.dest)


class LbSvcStrategy(SshStrategy):
    name = "lbsvc"
    exposure_mode = ExposureMode.EXTERNALLY_ROUTABLE

    def is_applicable(self, request):
        return True


class NodePortStrategy(SshStrategy):
    name = "nodeport"
    exposure_mode = ExposureMode.NODE_LOCAL

    def is_applicable(self, request):
        return True

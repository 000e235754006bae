# coding=utf-8
import logging

from pvmigrate_core.strategies.base import Strategy, pinned_node, rsync_job_manifest, run_rsync_job

logger = logging.getLogger(__name__)


def _allowed_nodes(volume):
    node = pinned_node(volume)
    if node:
        return {node}
    if volume.node_affinity:
        return set(volume.node_affinity)
    return None


class Mnt2Strategy(Strategy):
    """Mounts both claims into a single rsync job, no network hop."""

    name = "mnt2"

    def _common_nodes(self, request):
        constraints = [n for n in (_allowed_nodes(request.source), _allowed_nodes(request.dest)) if n is not None]
        if not constraints:
            return None
        return set.intersection(*constraints)

    def is_applicable(self, request):
        source, dest = request.source, request.dest
        if not source.same_namespace(dest):
            return False
        common = self._common_nodes(request)
        if common is not None and not common:
            logger.info(f"{self.name}: {source} and {dest} cannot be mounted on the same node")
            return False
        return True

    def execute(self, attempt, request):
        source, dest, opts = request.source, request.dest, request.options
        service_account = attempt.service_account(
            dest.kube, dest.namespace, opts.source_create_policy or opts.dest_create_policy)

        common = self._common_nodes(request)
        node_name = next(iter(common)) if common and len(common) == 1 else None

        manifest = rsync_job_manifest(attempt, request, dest.namespace, service_account,
                                      node_name=node_name, source_claim=source.name)
        run_rsync_job(attempt, dest.kube, dest.namespace, manifest, opts)

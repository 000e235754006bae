# coding=utf-8
import logging

from pvmigrate_core import constants, lifecycle, rbac, utils
from pvmigrate_core.exceptions import WaitTimeoutError, WatchError

logger = logging.getLogger(__name__)


class MigrationInstance:
    """One run of the engine; every object it creates carries its id."""

    def __init__(self, instance_id=None):
        self.id = instance_id or utils.generate_instance_id()
        self._touched = []

    def touch(self, kube, namespace):
        for k, ns in self._touched:
            if k is kube and ns == namespace:
                return
        self._touched.append((kube, namespace))

    def new_attempt(self, strategy):
        return StrategyAttempt(self, strategy)

    def cleanup(self):
        for kube, namespace in self._touched:
            logger.info(f"Cleaning up instance {self.id} in namespace '{namespace}'")
            lifecycle.delete_labeled(kube, namespace, self.id)


class StrategyAttempt:
    """The objects one strategy execution created, deleted when it ends."""

    def __init__(self, instance, strategy):
        self.instance = instance
        self.strategy = strategy
        self.handles = []

    @property
    def instance_id(self):
        return self.instance.id

    def name(self, component):
        return utils.resource_name(component, self.instance.id)

    def labels(self, component):
        return utils.component_labels(self.instance.id, component)

    def track(self, handle):
        self.instance.touch(handle.kube, handle.namespace)
        self.handles.append(handle)
        return handle

    def create(self, kube, namespace, manifest):
        self.instance.touch(kube, namespace)
        return self.track(lifecycle.create(kube, namespace, manifest))

    def service_account(self, kube, namespace, create_policy):
        self.instance.touch(kube, namespace)
        return rbac.service_account_for(kube, self.instance.id, namespace, create_policy, on_created=self.track)

    def cleanup(self, timeout=constants.DELETION_TIMEOUT_SEC, interval=constants.POLL_INTERVAL_SEC):
        """Deletes what this attempt created, newest first, and waits until the names are free again."""
        pending = []
        while self.handles:
            handle = self.handles.pop()
            if lifecycle.delete(handle):
                pending.append(handle)

        for handle in pending:
            try:
                lifecycle.wait_until_deleted(handle, timeout=timeout, interval=interval)
            except (WaitTimeoutError, WatchError) as e:
                logger.warning(f"Could not confirm deletion of {handle}: {e}")

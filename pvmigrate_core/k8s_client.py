# coding=utf-8
from kubernetes import client

from pvmigrate_core import constants


class KubeClient:
    """The API groups a migration talks to, bound to one cluster connection."""

    def __init__(self, api_client=None, name="", namespace=constants.DEFAULT_NAMESPACE):
        self.api_client = api_client
        self.name = name
        self.namespace = namespace
        self.core_v1 = client.CoreV1Api(api_client)
        self.batch_v1 = client.BatchV1Api(api_client)
        self.rbac_v1 = client.RbacAuthorizationV1Api(api_client)
        self.custom = client.CustomObjectsApi(api_client)

    @property
    def cluster_id(self):
        # two contexts pointing at the same API server are the same cluster
        if self.api_client is not None and self.api_client.configuration.host:
            return self.api_client.configuration.host
        return self.name

    def __repr__(self):
        return f"KubeClient({self.name or self.cluster_id})"

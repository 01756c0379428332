"""Unit tests for ApplicationContext.

Tests the dependency container to ensure:
1. Context is immutable
2. Cluster credentials are only loaded for collaborators not injected
3. Route support follows configuration
4. Testing factory never sleeps
"""

import dataclasses

import pytest
from unittest.mock import Mock, patch

from hubdeploy.core.context import ApplicationContext
from hubdeploy.core.types import HubDeployConfig, KubeConfig
from hubdeploy.instances.credentials import SecretCredentialSource
from hubdeploy.instances.flavor import FlavorResolver
from hubdeploy.instances.resource_builder import StandardResourceBuilder
from conftest import FakeCluster, RecordingApplier


class TestApplicationContext:
    """Test ApplicationContext creation and immutability."""

    def test_context_is_immutable(self) -> None:
        """ApplicationContext should be frozen."""
        ctx = ApplicationContext.for_testing(cluster=FakeCluster(), applier=RecordingApplier())

        with pytest.raises(dataclasses.FrozenInstanceError):
            ctx.cluster = FakeCluster()

    @patch("hubdeploy.instances.cluster.create_api_client")
    def test_injected_cluster_needs_no_credentials(self, mock_client) -> None:
        """Should not load cluster credentials when everything is injected."""
        cluster = FakeCluster()
        applier = RecordingApplier()

        ctx = ApplicationContext.for_testing(cluster=cluster, applier=applier)

        mock_client.assert_not_called()
        assert ctx.cluster is cluster
        assert ctx.applier is applier
        assert ctx.route_client is None
        assert isinstance(ctx.builder, StandardResourceBuilder)
        assert isinstance(ctx.flavor_resolver, FlavorResolver)
        assert isinstance(ctx.credentials, SecretCredentialSource)

    @patch("hubdeploy.instances.routes.OpenShiftRouteClient")
    @patch("hubdeploy.instances.applier.KubernetesBatchApplier")
    @patch("hubdeploy.instances.cluster.KubernetesCluster")
    @patch("hubdeploy.instances.cluster.create_api_client")
    def test_create_builds_kubernetes_collaborators(
        self, mock_client, mock_cluster, mock_applier, mock_routes
    ) -> None:
        """Should share one API client between the Kubernetes collaborators."""
        config = HubDeployConfig(kube=KubeConfig(openshift_routes=True))

        ctx = ApplicationContext.create(config, logger=Mock())

        api_client = mock_client.return_value
        mock_client.assert_called_once_with(config.kube)
        mock_cluster.assert_called_once_with(api_client)
        mock_routes.assert_called_once_with(api_client)
        assert ctx.cluster is mock_cluster.return_value
        assert ctx.applier is mock_applier.return_value
        assert ctx.route_client is mock_routes.return_value

    def test_testing_config_is_instant(self) -> None:
        """Testing factory should bound polls to three attempts without sleeping."""
        ctx = ApplicationContext.for_testing(cluster=FakeCluster(), applier=RecordingApplier())

        polling = ctx.config.polling
        assert polling.pods_running.interval == 0
        assert polling.namespace_deletion.max_attempts == 3
        assert polling.exposure_settle_delay == 0

    def test_custom_collaborators(self) -> None:
        """Should keep injected builder and credentials."""
        builder = Mock()
        credentials = Mock()

        ctx = ApplicationContext.for_testing(
            cluster=FakeCluster(),
            applier=RecordingApplier(),
            builder=builder,
            credentials=credentials,
        )

        assert ctx.builder is builder
        assert ctx.credentials is credentials

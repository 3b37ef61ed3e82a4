"""Integration tests for the composition root.

These tests verify that the bootstrap process correctly loads configuration,
instantiates adapters, builds the session client, and runs the smoke
lifecycle end to end against in-memory fakes.
"""

import os
from unittest.mock import MagicMock, patch

import pytest
from pydantic import ValidationError

from testnvac.adapters.aws import (
    EventBridgeRoutingAdapter,
    SQSMessagingAdapter,
    STSIdentityAdapter,
)
from testnvac.config import Settings, load_settings
from testnvac.core.errors import ProvisioningError
from testnvac.core.session import TestSessionClient
from testnvac.main import build_adapters, build_session_client, main, run_smoke
from testnvac.tests.fakes import (
    FakeEventRoutingPort,
    FakeIdentityPort,
    FakeMessagingPort,
)

SESSION_ENV = {
    "SERVICE_NAME": "orders",
    "SERVICE_SOURCE": "integration.testing.abc",
    "BUS_NAME": "eventbridge-uat",
}


def fast_settings(**overrides) -> Settings:
    values = {
        "service_name": "orders",
        "service_source": "integration.testing.abc",
        "bus_name": "eventbridge-uat",
        "probe_interval_seconds": 0,
        "purge_settle_seconds": 0,
        "queue_create_settle_seconds": 0,
        "receive_wait_time_seconds": 0,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)  # type: ignore[call-arg]


class TestConfigurationLoading:
    """Test configuration loading and validation."""

    def test_load_settings_with_defaults(self) -> None:
        """Load settings with default values."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)  # type: ignore[call-arg]

        assert settings.bus_name == "default"
        assert settings.aws_region == "us-east-1"
        assert settings.detail_types == []
        assert settings.readiness_timeout_seconds == 60.0
        assert settings.receive_wait_time_seconds == 20
        assert settings.receive_attempts == 4
        assert settings.target_input_path == ""
        assert settings.log_level == "INFO"

    def test_load_settings_from_env(self) -> None:
        """Load settings from environment variables."""
        with patch.dict(
            os.environ,
            {
                **SESSION_ENV,
                "AWS_REGION": "eu-west-1",
                "DETAIL_TYPES": '["OrderCreated", "OrderShipped"]',
                "READINESS_TIMEOUT_SECONDS": "30",
                "TARGET_INPUT_PATH": "$.detail",
                "LOG_LEVEL": "DEBUG",
            },
        ):
            settings = load_settings()

        assert settings.service_name == "orders"
        assert settings.bus_name == "eventbridge-uat"
        assert settings.aws_region == "eu-west-1"
        assert settings.detail_types == ["OrderCreated", "OrderShipped"]
        assert settings.readiness_timeout_seconds == 30.0
        assert settings.target_input_path == "$.detail"
        assert settings.log_level == "DEBUG"

    def test_load_settings_from_env_file(self, tmp_path) -> None:
        """Settings can come from an explicit .env file."""
        env_file = tmp_path / ".env"
        env_file.write_text("SERVICE_NAME=billing\nBUS_NAME=billing-bus\n")

        with patch.dict(os.environ, {}, clear=True):
            settings = load_settings(str(env_file))

        assert settings.service_name == "billing"
        assert settings.bus_name == "billing-bus"

    @pytest.mark.parametrize(
        "name,value",
        [
            ("READINESS_TIMEOUT_SECONDS", "0"),
            ("PROBE_POLL_WAIT_SECONDS", "21"),
            ("RECEIVE_WAIT_TIME_SECONDS", "-1"),
            ("PURGE_SETTLE_SECONDS", "-1"),
            ("RECEIVE_ATTEMPTS", "0"),
            ("RECEIVE_MAX_MESSAGES", "11"),
            ("LOG_LEVEL", "LOUD"),
        ],
    )
    def test_load_settings_rejects_invalid_values(self, name: str, value: str) -> None:
        """Out-of-range values fail validation."""
        with patch.dict(os.environ, {name: value}):
            with pytest.raises(ValidationError):
                load_settings()

    def test_session_config_carries_settings(self) -> None:
        """The session config mirrors the loaded settings."""
        settings = fast_settings(
            detail_types=["OrderCreated"], aws_region="eu-west-1", target_input_path="$.detail"
        )
        config = settings.session_config()

        assert config.service_name == "orders"
        assert config.region == "eu-west-1"
        assert config.detail_types == ("OrderCreated",)
        assert config.target_input_path == "$.detail"
        assert config.purge_settle_seconds == 0

    def test_session_config_empty_input_path_is_none(self) -> None:
        """An empty input path means full envelopes."""
        assert fast_settings().session_config().target_input_path is None

    def test_session_config_requires_service_name(self) -> None:
        """An unset service name cannot name resources."""
        with pytest.raises(ValueError, match="service_name"):
            fast_settings(service_name="").session_config()


class TestAdapterInstantiation:
    """Test that adapters are correctly instantiated with configuration."""

    def test_build_adapters_creates_one_client_per_service(self) -> None:
        """SQS, EventBridge and STS clients share region and profile."""
        settings = fast_settings(aws_region="eu-west-1", aws_profile="ci", boto_max_attempts=5)

        with patch("testnvac.main.create_boto_client", return_value=MagicMock()) as factory:
            messaging, routing, identity = build_adapters(settings)

        assert isinstance(messaging, SQSMessagingAdapter)
        assert isinstance(routing, EventBridgeRoutingAdapter)
        assert isinstance(identity, STSIdentityAdapter)
        assert [call.args[0] for call in factory.call_args_list] == ["sqs", "events", "sts"]
        for call in factory.call_args_list:
            assert call.kwargs == {
                "region_name": "eu-west-1",
                "profile_name": "ci",
                "max_attempts": 5,
            }

    def test_build_session_client(self) -> None:
        """The client is built unprovisioned with the configured names."""
        with patch("testnvac.main.create_boto_client", return_value=MagicMock()):
            client = build_session_client(fast_settings())

        assert isinstance(client, TestSessionClient)
        assert client.queue_url is None
        assert client.identity.queue_name.startswith("orders-tests-queue-")


class TestSmokeRun:
    """Test the smoke lifecycle wired through the composition root."""

    @pytest.fixture
    def fakes(self) -> tuple[FakeMessagingPort, FakeEventRoutingPort, FakeIdentityPort]:
        messaging = FakeMessagingPort()
        routing = FakeEventRoutingPort(messaging=messaging, live_after_publishes=2)
        return messaging, routing, FakeIdentityPort()

    @pytest.mark.asyncio
    async def test_run_smoke_round_trips_payload_and_cleans_up(self, fakes) -> None:
        """The smoke payload comes back wrapped in its envelope."""
        messaging, routing, _ = fakes
        settings = fast_settings(smoke_payload={"orderId": 1})

        with patch("testnvac.main.build_adapters", return_value=fakes):
            message = await run_smoke(settings)

        assert message["detail"] == {"orderId": 1}
        assert message["detail-type"] == "TestNVacSmoke"
        assert messaging.queues == {}
        assert routing.rules == {}

    @pytest.mark.asyncio
    async def test_run_smoke_with_detail_input_path(self, fakes) -> None:
        """With $.detail the payload arrives bare."""
        settings = fast_settings(target_input_path="$.detail")

        with patch("testnvac.main.build_adapters", return_value=fakes):
            message = await run_smoke(settings)

        assert message == {"smoke": True}

    @pytest.mark.asyncio
    async def test_run_smoke_propagates_provisioning_failure(self, fakes) -> None:
        """A failed create surfaces and leaves nothing behind."""
        messaging, routing, _ = fakes
        routing.set_should_fail("put_target")

        with patch("testnvac.main.build_adapters", return_value=fakes):
            with pytest.raises(ProvisioningError):
                await run_smoke(fast_settings())

        assert messaging.queues == {}
        assert routing.rules == {}


class TestMainEntryPoint:
    """Test exit codes of the smoke entry point."""

    def test_main_success(self, capsys) -> None:
        """A successful run prints the message and exits normally."""
        with patch("testnvac.main.load_settings", return_value=fast_settings()), patch(
            "testnvac.main.configure_logging"
        ), patch("testnvac.main.asyncio.run", return_value={"smoke": True}) as run:
            main()
            run.call_args.args[0].close()

        assert '"smoke": true' in capsys.readouterr().out

    def test_main_lifecycle_failure_exits_1(self) -> None:
        """Lifecycle errors exit with status 1."""
        with patch("testnvac.main.load_settings", return_value=fast_settings()), patch(
            "testnvac.main.configure_logging"
        ), patch(
            "testnvac.main.asyncio.run",
            side_effect=ProvisioningError("boom", step="queue", resource_name="q"),
        ) as run:
            with pytest.raises(SystemExit) as exc_info:
                main()
            run.call_args.args[0].close()

        assert exc_info.value.code == 1

    def test_main_invalid_configuration_exits_1(self) -> None:
        """Invalid settings exit with status 1."""
        with patch("testnvac.main.load_settings", side_effect=ValueError("bad")):
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == 1

    def test_main_interrupted_exits_130(self) -> None:
        """SIGINT exits with status 130."""
        with patch("testnvac.main.load_settings", side_effect=KeyboardInterrupt):
            with pytest.raises(SystemExit) as exc_info:
                main()

        assert exc_info.value.code == 130

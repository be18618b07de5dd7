"""Integration tests for spec files through to rendered output.

These tests use MockSQSClient to run the full flow without AWS
connectivity.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml
from sqs_mock import MockSQSClient

from sqs_controller.cloud import AWSAPITarget, SQSCloud
from sqs_controller.config import Config, ReconciliationMode, RenderTargetKind
from sqs_controller.main import build_target, main, reconcile_specs
from sqs_controller.spec_loader import SpecLoadError
from sqs_controller.terraform import TerraformTarget

POLICY = {
    "Version": "2012-10-17",
    "Statement": [
        {
            "Effect": "Allow",
            "Principal": {"Service": ["sns.amazonaws.com", "events.amazonaws.com"]},
            "Action": "sqs:SendMessage",
            "Resource": "*",
        }
    ],
}


class TestReconcileSpecs:
    """Spec files through the reconciler."""

    @pytest.fixture
    def specs_dir(self, tmp_path: Path) -> Path:
        specs = tmp_path / "specs"
        specs.mkdir()
        (specs / "policy.json").write_text(json.dumps(POLICY))
        (specs / "queues.yaml").write_text(
            yaml.safe_dump(
                {
                    "apiVersion": "sqs-operator/v1",
                    "kind": "QueueSpec",
                    "spec": {
                        "queues": [
                            {
                                "name": "orders",
                                "messageRetentionPeriod": 86400,
                                "policyFile": "policy.json",
                                "tags": {"team": "payments"},
                            },
                            {"name": "audit", "lifecycle": "Ignore"},
                        ]
                    },
                }
            )
        )
        return specs

    def test_direct_apply(
        self,
        specs_dir: Path,
        tmp_path: Path,
        cloud: SQSCloud,
        sqs_client: MockSQSClient,
    ) -> None:
        config = Config(region="us-east-1", specs_dir=specs_dir)

        result = reconcile_specs(config, [], cloud=cloud)

        assert result.success
        assert [t.queue for t in result.tasks] == ["orders", "audit"]
        orders = sqs_client.state.get_queue("orders")
        assert orders is not None
        assert json.loads(orders.attributes["Policy"]) == POLICY
        assert orders.tags == {"team": "payments"}
        assert sqs_client.state.get_queue("audit") is None

    def test_policy_reordered_by_provider_is_stable(
        self,
        specs_dir: Path,
        cloud: SQSCloud,
        sqs_client: MockSQSClient,
    ) -> None:
        """A provider-side principal reorder does not count as drift."""
        reordered = json.loads(json.dumps(POLICY))
        reordered["Statement"][0]["Principal"]["Service"].reverse()
        sqs_client.state.add_queue(
            "orders",
            attributes={"MessageRetentionPeriod": "86400", "Policy": json.dumps(reordered)},
            tags={"team": "payments", "aws:createdBy": "someone"},
        )
        config = Config(region="us-east-1", specs_dir=specs_dir)

        result = reconcile_specs(config, [specs_dir / "queues.yaml"], cloud=cloud)

        assert result.success
        assert result.drift_found is False

    def test_terraform_export(
        self,
        specs_dir: Path,
        tmp_path: Path,
        cloud: SQSCloud,
        sqs_client: MockSQSClient,
    ) -> None:
        out = tmp_path / "tf"
        config = Config(
            region="us-east-1",
            specs_dir=specs_dir,
            terraform_output_dir=out,
            target=RenderTargetKind.TERRAFORM,
        )

        result = reconcile_specs(config, [], cloud=cloud)

        assert result.success
        document = json.loads((out / "main.tf.json").read_text())
        block = document["resource"]["aws_sqs_queue"]["orders"]
        assert block["message_retention_seconds"] == 86400
        assert block["policy"] == '${file("${path.module}/data/aws_sqs_queue_orders_policy")}'
        assert json.loads((out / "data" / "aws_sqs_queue_orders_policy").read_text()) == POLICY
        assert sqs_client.call_count("create_queue") == 0

    def test_observe_mode(
        self,
        specs_dir: Path,
        cloud: SQSCloud,
        sqs_client: MockSQSClient,
    ) -> None:
        config = Config(
            region="us-east-1", specs_dir=specs_dir, mode=ReconciliationMode.OBSERVE
        )

        result = reconcile_specs(config, [], cloud=cloud)

        assert result.success
        assert result.drift_found is True
        assert sqs_client.state.queue_count == 0

    def test_invalid_spec_touches_nothing(
        self, tmp_path: Path, cloud: SQSCloud, sqs_client: MockSQSClient
    ) -> None:
        bad = tmp_path / "bad.yaml"
        bad.write_text("name: orders\nmessageRetentionPeriod: 5\n")
        config = Config(region="us-east-1")

        with pytest.raises(SpecLoadError):
            reconcile_specs(config, [bad], cloud=cloud)

        assert sqs_client.calls == []


class TestMain:
    """Tests for the main entry point."""

    def test_bad_config_exits_nonzero(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("AWS_REGION", "not a region")

        assert main() == 1

    def test_missing_specs_dir_exits_nonzero(self, tmp_path: Path) -> None:
        config = Config(region="us-east-1", specs_dir=tmp_path / "missing")

        assert main(config=config) == 1

    def test_build_target(self, cloud: SQSCloud, tmp_path: Path) -> None:
        aws = build_target(Config(region="us-east-1"), cloud)
        tf = build_target(
            Config(
                region="us-east-1",
                terraform_output_dir=tmp_path,
                target=RenderTargetKind.TERRAFORM,
            ),
            cloud,
        )

        assert isinstance(aws, AWSAPITarget)
        assert isinstance(tf, TerraformTarget)
        assert tf.output_dir == tmp_path

"""Tests for the Terraform export target."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

import pytest

from sqs_controller.errors import RenderError
from sqs_controller.resources import FileResource, StringResource
from sqs_controller.sqs import SQSQueue
from sqs_controller.terraform import (
    Literal,
    TerraformTarget,
    literal_data_file,
    literal_property,
    sanitize_name,
    tf_field,
    to_tf_fields,
)


@dataclass
class Block:
    name: str | None = tf_field("name")
    size: int | None = tf_field("size_bytes")
    ref: Literal | None = tf_field("ref")
    labels: dict[str, str] | None = tf_field("labels")


class TestLiterals:
    """Tests for name sanitizing and interpolation literals."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("orders", "orders"),
            ("orders-dlq", "orders-dlq"),
            ("orders.fifo", "orders_dot_fifo"),
            ("order_items", "order__items"),
            ("a/b", "a_x2f_b"),
            ("1queue", "_1queue"),
            ("-queue", "_-queue"),
        ],
    )
    def test_sanitize_name(self, name: str, expected: str) -> None:
        assert sanitize_name(name) == expected

    def test_sanitize_name_keeps_queue_names_distinct(self) -> None:
        """Test that names SQS treats as different never share a resource name."""
        names = [
            "jobs.fifo",
            "jobs-fifo",
            "jobs_fifo",
            "jobs_dot_fifo",
            "jobs__fifo",
            "jobs_.fifo",
            "jobs._fifo",
        ]

        assert len({sanitize_name(n) for n in names}) == len(names)

    def test_literal_property(self) -> None:
        assert literal_property("aws_sqs_queue", "orders.fifo", "arn").value == (
            "${aws_sqs_queue.orders_dot_fifo.arn}"
        )

    def test_literal_data_file(self) -> None:
        assert literal_data_file("x_policy").value == '${file("${path.module}/data/x_policy")}'


class TestToTfFields:
    """Tests for dataclass to Terraform attribute conversion."""

    def test_omits_none_and_renames(self) -> None:
        fields = to_tf_fields(Block(name="q", size=10))

        assert fields == {"name": "q", "size_bytes": 10}

    def test_literal_and_sorted_maps(self) -> None:
        fields = to_tf_fields(Block(ref=Literal("${x.y.z}"), labels={"b": "2", "a": "1"}))

        assert fields["ref"] == "${x.y.z}"
        assert list(fields["labels"]) == ["a", "b"]

    def test_rejects_non_dataclass(self) -> None:
        with pytest.raises(TypeError):
            to_tf_fields({"name": "q"})


class TestTerraformTarget:
    """Tests for TerraformTarget buffering and output."""

    def test_renders_unchanged(self, tmp_path: Path) -> None:
        assert TerraformTarget(tmp_path).renders_unchanged is True

    def test_duplicate_resource_raises(self, tmp_path: Path) -> None:
        target = TerraformTarget(tmp_path)
        target.render_resource("aws_sqs_queue", "orders", Block(name="orders"))

        with pytest.raises(RenderError, match="duplicate"):
            target.render_resource("aws_sqs_queue", "orders", Block(name="orders"))

    def test_failed_duplicate_keeps_first_side_file(self, tmp_path: Path) -> None:
        """Test that a rejected block leaves earlier side files untouched."""
        target = TerraformTarget(tmp_path)
        first = target.add_file_resource(
            "aws_sqs_queue", "jobs", "policy", StringResource('{"A":1}')
        )
        target.render_resource("aws_sqs_queue", "jobs", Block(name="jobs", ref=first))
        before = target.files

        with pytest.raises(RenderError, match="duplicate"):
            target.add_file_resource("aws_sqs_queue", "jobs", "policy", StringResource('{"B":2}'))

        assert target.files == before

    def test_failed_render_discards_staged_file(self, tmp_path: Path) -> None:
        """Test that side files of a block that fails to convert are dropped."""
        target = TerraformTarget(tmp_path)
        target.add_file_resource("aws_sqs_queue", "jobs", "policy", StringResource("{}"))

        with pytest.raises(RenderError, match="cannot render"):
            target.render_resource("aws_sqs_queue", "jobs", {"name": "jobs"})

        assert target.files == {}
        assert target.document() == {"resource": {}}

    def test_similar_queue_names_export_together(self, tmp_path: Path) -> None:
        """Test that jobs.fifo and jobs-fifo each keep their own policy."""
        target = TerraformTarget(tmp_path)
        first = SQSQueue(name="jobs.fifo", policy=StringResource('{"A":1}'))
        first.render_terraform(target, None, first, None)
        second = SQSQueue(name="jobs-fifo", policy=StringResource('{"B":2}'))
        second.render_terraform(target, None, second, None)

        assert target.files == {
            "aws_sqs_queue_jobs_dot_fifo_policy": b'{"A":1}',
            "aws_sqs_queue_jobs-fifo_policy": b'{"B":2}',
        }
        blocks = target.resources["aws_sqs_queue"]
        assert blocks["jobs_dot_fifo"]["name"] == "jobs.fifo"
        assert blocks["jobs-fifo"]["name"] == "jobs-fifo"

    def test_add_file_resource_none(self, tmp_path: Path) -> None:
        target = TerraformTarget(tmp_path)

        assert target.add_file_resource("aws_sqs_queue", "orders", "policy", None) is None
        assert target.files == {}

    def test_add_file_resource_unreadable(self, tmp_path: Path) -> None:
        target = TerraformTarget(tmp_path)

        with pytest.raises(RenderError, match="error reading policy"):
            target.add_file_resource(
                "aws_sqs_queue", "orders", "policy", FileResource(tmp_path / "missing.json")
            )

    def test_nothing_written_before_finish(self, tmp_path: Path) -> None:
        out = tmp_path / "out"
        target = TerraformTarget(out)
        target.add_file_resource("aws_sqs_queue", "orders", "policy", StringResource("{}"))
        target.render_resource("aws_sqs_queue", "orders", Block(name="orders"))

        assert not out.exists()

    def test_finish_writes_main_and_data(self, tmp_path: Path) -> None:
        out = tmp_path / "out"
        target = TerraformTarget(out)
        policy = target.add_file_resource(
            "aws_sqs_queue", "orders.fifo", "policy", StringResource('{"Statement": []}')
        )
        target.render_resource("aws_sqs_queue", "orders.fifo", Block(name="orders.fifo", ref=policy))

        target.finish()

        document = json.loads((out / "main.tf.json").read_text())
        assert document == {
            "resource": {
                "aws_sqs_queue": {
                    "orders_dot_fifo": {
                        "name": "orders.fifo",
                        "ref": '${file("${path.module}/data/aws_sqs_queue_orders_dot_fifo_policy")}',
                    }
                }
            }
        }
        data_file = out / "data" / "aws_sqs_queue_orders_dot_fifo_policy"
        assert data_file.read_text() == '{"Statement": []}'

    def test_finish_into_file_raises(self, tmp_path: Path) -> None:
        blocker = tmp_path / "blocker"
        blocker.write_text("")
        target = TerraformTarget(blocker)

        with pytest.raises(RenderError, match="error writing Terraform output"):
            target.finish()

"""Initial dataset, ingestion and transform schema.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

_RUN_STATUS = sa.Enum("QUEUED", "RUNNING", "SUCCESS", "FAILED", name="runstatus", native_enum=False)


def _id() -> sa.Column[object]:
    return sa.Column("id", sa.Uuid(), nullable=False)


def _dataset_id(table: str) -> sa.Column[object]:
    return sa.Column(
        "dataset_id",
        sa.Uuid(),
        sa.ForeignKey(
            "dataset.id",
            name=f"fk_{table}_dataset_id_dataset",
            ondelete="CASCADE",
        ),
        nullable=False,
    )


def _source_fk(table: str, *, nullable: bool, ondelete: str) -> sa.Column[object]:
    return sa.Column(
        "source_id",
        sa.Uuid(),
        sa.ForeignKey("source.id", name=f"fk_{table}_source_id_source", ondelete=ondelete),
        nullable=nullable,
    )


def _run_fk(table: str) -> sa.Column[object]:
    return sa.Column(
        "ingestion_run_id",
        sa.Uuid(),
        sa.ForeignKey(
            "ingestion_run.id",
            name=f"fk_{table}_ingestion_run_id_ingestion_run",
            ondelete="SET NULL",
        ),
        nullable=True,
    )


def upgrade() -> None:
    op.create_table(
        "dataset",
        _id(),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("primary_record_type", sa.String(), nullable=True),
        sa.Column(
            "status",
            sa.Enum("ACTIVE", "FINISHED", name="datasetstatus", native_enum=False),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_dataset"),
    )
    op.create_table(
        "source",
        _id(),
        _dataset_id("source"),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column(
            "format",
            sa.Enum("CSV", "SQL", name="sourceformat", native_enum=False),
            nullable=False,
        ),
        sa.Column(
            "role",
            sa.Enum("SOURCE", "DESTINATION", name="sourcerole", native_enum=False),
            nullable=False,
        ),
        sa.Column("config", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_source"),
        sa.UniqueConstraint("dataset_id", "name", name="uq_source_dataset_name"),
    )
    op.create_table(
        "ingestion_run",
        _id(),
        _dataset_id("ingestion_run"),
        _source_fk("ingestion_run", nullable=False, ondelete="CASCADE"),
        sa.Column("status", _RUN_STATUS, nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rows_read", sa.Integer(), nullable=False),
        sa.Column("rows_stored", sa.Integer(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_ingestion_run"),
    )
    op.create_table(
        "raw_record",
        _id(),
        _dataset_id("raw_record"),
        _source_fk("raw_record", nullable=False, ondelete="CASCADE"),
        _run_fk("raw_record"),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("payload_hash", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_raw_record"),
    )
    op.create_index("ix_raw_record_source_hash", "raw_record", ["source_id", "payload_hash"])
    op.create_table(
        "relationship",
        _id(),
        _dataset_id("relationship"),
        _source_fk("relationship", nullable=True, ondelete="SET NULL"),
        _run_fk("relationship"),
        sa.Column("from_type", sa.String(), nullable=False),
        sa.Column("from_id", sa.Text(), nullable=False),
        sa.Column("to_type", sa.String(), nullable=False),
        sa.Column("to_id", sa.Text(), nullable=False),
        sa.Column("relation_type", sa.String(), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("ingested_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_relationship"),
    )
    op.create_table(
        "dataset_field",
        _id(),
        _dataset_id("dataset_field"),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column(
            "dtype",
            sa.Enum(
                "STRING",
                "INTEGER",
                "FLOAT",
                "BOOLEAN",
                "TIMESTAMP",
                "JSON",
                name="datatype",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column("is_nullable", sa.Boolean(), nullable=False),
        sa.Column("is_unique", sa.Boolean(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=True),
        sa.Column("default_expr", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_dataset_field"),
        sa.UniqueConstraint("dataset_id", "name", name="uq_dataset_field_dataset_name"),
    )
    op.create_table(
        "field_mapping",
        _id(),
        _dataset_id("field_mapping"),
        _source_fk("field_mapping", nullable=True, ondelete="CASCADE"),
        sa.Column(
            "field_id",
            sa.Uuid(),
            sa.ForeignKey(
                "dataset_field.id",
                name="fk_field_mapping_field_id_dataset_field",
                ondelete="CASCADE",
            ),
            nullable=False,
        ),
        sa.Column("src_path", sa.String(), nullable=True),
        sa.Column("src_json_path", sa.String(), nullable=True),
        sa.Column(
            "transform_type",
            sa.Enum(
                "NONE",
                "LOWERCASE",
                "UPPERCASE",
                "TRIM",
                "INT",
                "FLOAT",
                name="transformtype",
                native_enum=False,
            ),
            nullable=False,
        ),
        sa.Column("required", sa.Boolean(), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_field_mapping"),
    )
    op.create_table(
        "unified_row",
        _id(),
        _dataset_id("unified_row"),
        _source_fk("unified_row", nullable=True, ondelete="SET NULL"),
        sa.Column("record_key", sa.Text(), nullable=True),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("is_excluded", sa.Boolean(), nullable=False),
        sa.Column("observed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ingested_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_unified_row"),
    )
    op.create_table(
        "transform_run",
        _id(),
        _dataset_id("transform_run"),
        sa.Column("status", _RUN_STATUS, nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ended_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rows_in", sa.Integer(), nullable=False),
        sa.Column("rows_out", sa.Integer(), nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_transform_run"),
    )
    for table in (
        "source",
        "ingestion_run",
        "raw_record",
        "relationship",
        "dataset_field",
        "field_mapping",
        "unified_row",
        "transform_run",
    ):
        op.create_index(f"ix_{table}_dataset_id", table, ["dataset_id"])


def downgrade() -> None:
    for table in (
        "transform_run",
        "unified_row",
        "field_mapping",
        "dataset_field",
        "relationship",
        "raw_record",
        "ingestion_run",
        "source",
    ):
        op.drop_index(f"ix_{table}_dataset_id", table_name=table)
        if table == "raw_record":
            op.drop_index("ix_raw_record_source_hash", table_name=table)
        op.drop_table(table)
    op.drop_table("dataset")

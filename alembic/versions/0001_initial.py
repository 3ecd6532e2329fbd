"""initial schema and seed places

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 00:00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


REQUEST_STATUSES = ("Pending", "Accepted", "Rejected", "Blocked")


def _status_enum(name: str, *values: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False, length=16)


def _created_at(name: str = "created_at") -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())


def upgrade() -> None:
    # users
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("username", sa.Text(), nullable=False, unique=True),
        sa.Column("email", sa.Text(), nullable=False),
        sa.Column("phone_number", sa.Text(), nullable=False),
        sa.Column("password_hash", sa.Text(), nullable=False),
        _created_at(),
    )
    op.create_index("ix_users_phone_number", "users", ["phone_number"])

    # buddies
    op.create_table(
        "buddies",
        sa.Column(
            "requester_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "addressee_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("status", _status_enum("buddy_status", *REQUEST_STATUSES), nullable=False),
        _created_at("requested_at"),
        sa.CheckConstraint("requester_id <> addressee_id", name="buddy_not_self"),
    )
    op.create_index("ix_buddies_addressee_id", "buddies", ["addressee_id"])

    # places
    places = op.create_table(
        "places",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("city", sa.Text(), nullable=False),
        sa.Column("district", sa.Text(), nullable=True),
        sa.Column("centre_gps", sa.Text(), nullable=False),
    )

    # journeys
    op.create_table(
        "journeys",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("start_id", sa.Integer(), sa.ForeignKey("places.id"), nullable=False),
        sa.Column("end_id", sa.Integer(), sa.ForeignKey("places.id"), nullable=False),
        _created_at(),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_journeys_start_at", "journeys", ["start_at"])

    op.create_table(
        "journey_participants",
        sa.Column(
            "journey_id",
            sa.Integer(),
            sa.ForeignKey("journeys.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("role", _status_enum("journey_role", "Owner", "Participant"), nullable=False),
        sa.Column("status", _status_enum("participant_status", *REQUEST_STATUSES), nullable=False),
        _created_at("joined_at"),
    )
    op.create_index("ix_journey_participants_user_id", "journey_participants", ["user_id"])

    op.create_table(
        "journey_messages",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "journey_id",
            sa.Integer(),
            sa.ForeignKey("journeys.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "sender_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("content", sa.Text(), nullable=False),
        _created_at("sent_at"),
    )
    op.create_index(
        "ix_journey_messages_journey_id_sent_at",
        "journey_messages",
        ["journey_id", "sent_at"],
    )

    op.create_table(
        "ratings",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "journey_id",
            sa.Integer(),
            sa.ForeignKey("journeys.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("rating_value", sa.Integer(), nullable=False),
        sa.Column("note", sa.Text(), nullable=True),
        _created_at(),
        sa.UniqueConstraint("journey_id", "user_id", name="uq_ratings_journey_user"),
        sa.CheckConstraint("rating_value BETWEEN 1 AND 5", name="rating_value_range"),
    )

    # dangerous places; reported_by_id is no FK so it can hold the -1 sentinel
    op.create_table(
        "dangerous_places",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("reported_by_id", sa.Integer(), nullable=False),
        sa.Column("place_type", sa.Integer(), nullable=False, server_default=sa.text("4")),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("gps", sa.Text(), nullable=False),
        _created_at("reported_at"),
    )
    op.create_index("ix_dangerous_places_reported_by_id", "dangerous_places", ["reported_by_id"])
    op.create_index("ix_dangerous_places_reported_at", "dangerous_places", ["reported_at"])

    op.create_table(
        "user_verifications",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "user_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=True,
        ),
        sa.Column("type", _status_enum("verification_type", "Register"), nullable=False),
        sa.Column("phone_number", sa.Text(), nullable=False),
        sa.Column("code", sa.Text(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("username", sa.Text(), nullable=True),
        sa.Column("password_hash", sa.Text(), nullable=True),
        sa.Column("email", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_user_verifications_phone_number", "user_verifications", ["phone_number"])

    # Seed places around Eindhoven
    op.bulk_insert(
        places,
        [
            {"id": 1, "city": "Eindhoven", "district": "Centrum", "centre_gps": "51.4416,5.4697"},
            {"id": 2, "city": "Eindhoven", "district": "Strijp", "centre_gps": "51.4480,5.4485"},
            {"id": 3, "city": "Eindhoven", "district": "Gestel", "centre_gps": "51.4147,5.4688"},
            {"id": 4, "city": "Eindhoven", "district": "Stratum", "centre_gps": "51.4220,5.4938"},
            {"id": 5, "city": "Eindhoven", "district": "Tongelre", "centre_gps": "51.4440,5.5075"},
            {"id": 6, "city": "Eindhoven", "district": "Woensel-Zuid", "centre_gps": "51.4582,5.4779"},
            {"id": 7, "city": "Eindhoven", "district": "Woensel-Noord", "centre_gps": "51.4886,5.4672"},
            {"id": 8, "city": "Veldhoven", "district": "Centrum", "centre_gps": "51.4186,5.4028"},
            {"id": 9, "city": "Best", "district": None, "centre_gps": "51.5075,5.3953"},
            {"id": 10, "city": "Son en Breugel", "district": None, "centre_gps": "51.5096,5.4904"},
            {"id": 11, "city": "Waalre", "district": None, "centre_gps": "51.3915,5.4590"},
            {"id": 12, "city": "Geldrop", "district": None, "centre_gps": "51.4215,5.5590"},
            {"id": 13, "city": "Nuenen", "district": None, "centre_gps": "51.4750,5.5480"},
            {"id": 14, "city": "Helmond", "district": None, "centre_gps": "51.4792,5.6570"},
            {"id": 15, "city": "Mierlo", "district": None, "centre_gps": "51.4439,5.6204"},
            {"id": 16, "city": "Oirschot", "district": None, "centre_gps": "51.5052,5.3137"},
            {"id": 17, "city": "Heeze", "district": None, "centre_gps": "51.3831,5.5728"},
            {"id": 18, "city": "Leende", "district": None, "centre_gps": "51.3502,5.5492"},
            {"id": 19, "city": "Maarheeze", "district": None, "centre_gps": "51.3141,5.6284"},
            {"id": 20, "city": "Soerendonk", "district": None, "centre_gps": "51.3012,5.6028"},
            {"id": 21, "city": "Vessem", "district": None, "centre_gps": "51.4310,5.2886"},
            {"id": 22, "city": "Knegsel", "district": None, "centre_gps": "51.4099,5.3340"},
            {"id": 23, "city": "Wintelre", "district": None, "centre_gps": "51.4306,5.3822"},
            {"id": 24, "city": "Riethoven", "district": None, "centre_gps": "51.3503,5.3818"},
            {"id": 25, "city": "Steensel", "district": None, "centre_gps": "51.3846,5.3704"},
            {"id": 26, "city": "Westerhoven", "district": None, "centre_gps": "51.3340,5.4138"},
        ],
    )
    # Explicit ids above leave the PostgreSQL sequence behind
    if op.get_bind().dialect.name == "postgresql":
        op.execute("SELECT setval(pg_get_serial_sequence('places', 'id'), (SELECT MAX(id) FROM places))")


def downgrade() -> None:
    op.drop_index("ix_user_verifications_phone_number", table_name="user_verifications")
    op.drop_table("user_verifications")
    op.drop_index("ix_dangerous_places_reported_at", table_name="dangerous_places")
    op.drop_index("ix_dangerous_places_reported_by_id", table_name="dangerous_places")
    op.drop_table("dangerous_places")
    op.drop_table("ratings")
    op.drop_index("ix_journey_messages_journey_id_sent_at", table_name="journey_messages")
    op.drop_table("journey_messages")
    op.drop_index("ix_journey_participants_user_id", table_name="journey_participants")
    op.drop_table("journey_participants")
    op.drop_index("ix_journeys_start_at", table_name="journeys")
    op.drop_table("journeys")
    op.drop_table("places")
    op.drop_index("ix_buddies_addressee_id", table_name="buddies")
    op.drop_table("buddies")
    op.drop_index("ix_users_phone_number", table_name="users")
    op.drop_table("users")

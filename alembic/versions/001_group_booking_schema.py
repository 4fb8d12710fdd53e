"""Group booking workflow schema

Revision ID: 001
Revises:
Create Date: 2026-10-18

Creates: users, group_requests, segments, quotations, payments,
         payment_attachments, group_request_transitions, event_outbox, processed_events
Enums: userrole, grouprequeststatus, grouprequestaction, quotationstatus, paymentstatus,
       routingtype, requestcategory, grouptype, salutation, eventstatus
"""

from collections.abc import Sequence

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # ── 1. Enum types ────────────────────────────────────────────────────
    op.execute("CREATE TYPE userrole AS ENUM ('GROUP_DESK', 'ROUTE_CONTROLLER', 'ADMIN');")
    op.execute("""
        CREATE TYPE grouprequeststatus AS ENUM (
            'NEW', 'REVIEWING', 'QUOTED', 'CONFIRMED', 'TICKETED', 'CANCELLED',
            'CONFIRMED_PNR', 'SETTLED'
        );
    """)
    op.execute("""
        CREATE TYPE grouprequestaction AS ENUM (
            'ASSIGN_RC', 'QUOTE', 'ACCEPT_QUOTATION', 'MARK_TICKETED', 'CANCEL'
        );
    """)
    op.execute("""
        CREATE TYPE quotationstatus AS ENUM (
            'DRAFT', 'SENT', 'ACCEPTED', 'REJECTED', 'EXPIRED', 'RESENT'
        );
    """)
    op.execute("CREATE TYPE paymentstatus AS ENUM ('PENDING', 'PAID');")
    op.execute("CREATE TYPE routingtype AS ENUM ('ONE_WAY', 'RETURN', 'MULTICITY');")
    op.execute("""
        CREATE TYPE requestcategory AS ENUM (
            'DIRECT_CUSTOMER', 'GSA', 'CUSTOMER_CARE', 'AGENT'
        );
    """)
    op.execute("""
        CREATE TYPE grouptype AS ENUM (
            'EDUCATION', 'CONFERENCE', 'SPORTS', 'PILGRIMAGE', 'MICE', 'OTHER'
        );
    """)
    op.execute("CREATE TYPE salutation AS ENUM ('MR', 'MRS', 'MS', 'DR');")
    op.execute("""
        CREATE TYPE eventstatus AS ENUM ('PENDING', 'PROCESSING', 'COMPLETED', 'FAILED');
    """)

    # ── 2. users ─────────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE users (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            username VARCHAR(100) NOT NULL UNIQUE,
            password_hash VARCHAR(255) NOT NULL,
            role userrole NOT NULL,
            enabled BOOLEAN NOT NULL DEFAULT true,
            email VARCHAR(255),
            last_login_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("CREATE INDEX ix_users_role_enabled ON users (role, enabled);")

    # ── 3. group_requests ────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE group_requests (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            status grouprequeststatus NOT NULL DEFAULT 'NEW',
            salutation salutation,
            first_name VARCHAR(100) NOT NULL,
            last_name VARCHAR(100) NOT NULL,
            contact_email VARCHAR(255) NOT NULL,
            contact_number VARCHAR(50),
            agent_name VARCHAR(255),
            from_airport VARCHAR(3) NOT NULL,
            to_airport VARCHAR(3) NOT NULL,
            route VARCHAR(20) NOT NULL,
            routing routingtype NOT NULL,
            departure_date DATE,
            return_date DATE,
            flight_number VARCHAR(20),
            pax_adult INTEGER NOT NULL DEFAULT 0,
            pax_child INTEGER NOT NULL DEFAULT 0,
            pax_infant INTEGER NOT NULL DEFAULT 0,
            pax_count INTEGER NOT NULL DEFAULT 0,
            request_date DATE NOT NULL,
            category requestcategory NOT NULL DEFAULT 'DIRECT_CUSTOMER',
            pos_code VARCHAR(10),
            currency VARCHAR(3) NOT NULL DEFAULT 'USD',
            group_type grouptype,
            special_request TEXT,
            partner_id VARCHAR(50),
            quoted_fare NUMERIC(15, 2),
            assigned_rc_username VARCHAR(100),
            pnr_code VARCHAR(8),
            pnr_issued_at TIMESTAMPTZ,
            cancelled_at TIMESTAMPTZ,
            cancellation_reason TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("CREATE INDEX ix_group_requests_status ON group_requests (status);")
    op.execute("CREATE INDEX ix_group_requests_created_at ON group_requests (created_at);")
    op.execute("CREATE INDEX ix_group_requests_assigned_rc ON group_requests (assigned_rc_username);")

    # ── 4. segments ──────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE segments (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            group_request_id UUID NOT NULL REFERENCES group_requests(id) ON DELETE CASCADE,
            position INTEGER NOT NULL,
            from_airport VARCHAR(3) NOT NULL,
            to_airport VARCHAR(3) NOT NULL,
            travel_date DATE,
            extras JSONB NOT NULL DEFAULT '{}'::jsonb,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_segments_request_position UNIQUE (group_request_id, position),
            CONSTRAINT ck_segments_distinct_endpoints CHECK (from_airport <> to_airport)
        );
    """)

    # ── 5. quotations ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE quotations (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            group_request_id UUID NOT NULL REFERENCES group_requests(id) ON DELETE CASCADE,
            status quotationstatus NOT NULL DEFAULT 'DRAFT',
            total_fare NUMERIC(15, 2) NOT NULL,
            currency VARCHAR(3) NOT NULL,
            note TEXT,
            created_date TIMESTAMPTZ NOT NULL,
            expiry_date TIMESTAMPTZ NOT NULL,
            created_by VARCHAR(100),
            approved_by VARCHAR(100),
            sent_at TIMESTAMPTZ,
            accepted_at TIMESTAMPTZ,
            superseded_by_id UUID REFERENCES quotations(id) ON DELETE SET NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("CREATE INDEX ix_quotations_group_request_id ON quotations (group_request_id);")
    op.execute("CREATE INDEX ix_quotations_status_expiry ON quotations (status, expiry_date);")

    # ── 6. payments + attachments ────────────────────────────────────────
    op.execute("""
        CREATE TABLE payments (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            group_request_id UUID NOT NULL REFERENCES group_requests(id) ON DELETE CASCADE,
            quotation_id UUID REFERENCES quotations(id) ON DELETE SET NULL,
            installment_number INTEGER NOT NULL DEFAULT 1,
            status paymentstatus NOT NULL DEFAULT 'PENDING',
            amount NUMERIC(15, 2) NOT NULL,
            currency VARCHAR(3) NOT NULL,
            due_date DATE NOT NULL,
            reference VARCHAR(100),
            paid_at TIMESTAMPTZ,
            paid_by VARCHAR(100),
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("CREATE INDEX ix_payments_group_request_id ON payments (group_request_id);")
    op.execute("CREATE INDEX ix_payments_status_due_date ON payments (status, due_date);")

    op.execute("""
        CREATE TABLE payment_attachments (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            payment_id UUID NOT NULL REFERENCES payments(id) ON DELETE CASCADE,
            filename VARCHAR(255) NOT NULL,
            content_type VARCHAR(100) NOT NULL,
            size INTEGER NOT NULL,
            storage_key VARCHAR(255) NOT NULL UNIQUE,
            uploaded_by VARCHAR(100),
            uploaded_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("CREATE INDEX ix_payment_attachments_payment_id ON payment_attachments (payment_id);")

    # ── 7. group_request_transitions (append-only audit) ─────────────────
    op.execute("""
        CREATE TABLE group_request_transitions (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            group_request_id UUID NOT NULL REFERENCES group_requests(id) ON DELETE CASCADE,
            from_status grouprequeststatus NOT NULL,
            to_status grouprequeststatus NOT NULL,
            action grouprequestaction NOT NULL,
            triggered_by VARCHAR(100),
            reason TEXT,
            metadata_extra JSONB NOT NULL DEFAULT '{}'::jsonb,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("""
        CREATE INDEX ix_group_request_transitions_request_id
            ON group_request_transitions (group_request_id);
    """)

    # ── 8. Event outbox ──────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE event_outbox (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            event_type VARCHAR(255) NOT NULL,
            aggregate_type VARCHAR(255) NOT NULL,
            aggregate_id VARCHAR(255) NOT NULL,
            payload JSONB NOT NULL DEFAULT '{}'::jsonb,
            status eventstatus NOT NULL DEFAULT 'PENDING',
            retry_count INTEGER NOT NULL DEFAULT 0,
            max_retries INTEGER NOT NULL DEFAULT 3,
            last_error TEXT,
            processed_at TIMESTAMPTZ,
            schema_version INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("CREATE INDEX ix_event_outbox_status ON event_outbox (status);")
    op.execute("CREATE INDEX ix_event_outbox_aggregate ON event_outbox (aggregate_type, aggregate_id);")
    op.execute("""
        CREATE INDEX ix_event_outbox_pending ON event_outbox (created_at)
            WHERE status = 'PENDING';
    """)

    op.execute("""
        CREATE TABLE processed_events (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            event_id UUID NOT NULL UNIQUE,
            event_type VARCHAR(255) NOT NULL,
            handler_name VARCHAR(255) NOT NULL,
            processed_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            expires_at TIMESTAMPTZ NOT NULL
        );
    """)
    op.execute("CREATE INDEX ix_processed_events_expires_at ON processed_events (expires_at);")


def downgrade() -> None:
    for table in (
        "processed_events",
        "event_outbox",
        "group_request_transitions",
        "payment_attachments",
        "payments",
        "quotations",
        "segments",
        "group_requests",
        "users",
    ):
        op.execute(f"DROP TABLE IF EXISTS {table};")

    for enum_name in (
        "eventstatus",
        "salutation",
        "grouptype",
        "requestcategory",
        "routingtype",
        "paymentstatus",
        "quotationstatus",
        "grouprequestaction",
        "grouprequeststatus",
        "userrole",
    ):
        op.execute(f"DROP TYPE IF EXISTS {enum_name};")

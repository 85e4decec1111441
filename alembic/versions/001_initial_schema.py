"""001 – Initial schema: admins, organisations and every tenant-scoped table.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18 10:00:00.000000+05:30
"""

from alembic import op

# Revision identifiers
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

# id, flags and audit columns shared by every business table
FLAG_COLUMNS = """
            id           UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            active_flag  BOOLEAN NOT NULL DEFAULT TRUE,
            delete_flag  BOOLEAN NOT NULL DEFAULT FALSE,
            created_at   TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            modified_at  TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            created_by   UUID,
            modified_by  UUID"""

ORG_COLUMNS = FLAG_COLUMNS + """,
            organisation_id UUID NOT NULL REFERENCES organisations(id) ON DELETE CASCADE"""


def _create_table(name: str, columns: str, scoped: bool = True) -> None:
    base = ORG_COLUMNS if scoped else FLAG_COLUMNS
    op.execute(f"CREATE TABLE {name} ({base},{columns})")
    if scoped:
        op.execute(f"CREATE INDEX ix_{name}_organisation_id ON {name}(organisation_id)")


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    # ── Extensions ────────────────────────────────────────────────────────
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp"')
    op.execute('CREATE EXTENSION IF NOT EXISTS "pg_trgm"')

    # ── 1. admins ─────────────────────────────────────────────────────────
    _create_table("admins", """
            name           VARCHAR(200) NOT NULL,
            email          VARCHAR(255) NOT NULL UNIQUE,
            mobile         VARCHAR(20) UNIQUE,
            password_hash  VARCHAR(255) NOT NULL,
            is_verified    BOOLEAN NOT NULL DEFAULT FALSE,
            otp_hash       VARCHAR(128),
            otp_expires_at TIMESTAMPTZ,
            last_login_at  TIMESTAMPTZ
    """, scoped=False)

    # ── 2. organisations ──────────────────────────────────────────────────
    _create_table("organisations", """
            admin_id                    UUID NOT NULL REFERENCES admins(id) ON DELETE CASCADE,
            name                        VARCHAR(200) NOT NULL,
            code                        VARCHAR(50),
            description                 TEXT,
            plan                        VARCHAR(30) NOT NULL DEFAULT 'free',
            active_modules              JSONB,
            half_day_threshold_hours    DOUBLE PRECISION,
            default_working_day_rule_id UUID,
            time_zone                   VARCHAR(64) NOT NULL DEFAULT 'Asia/Kolkata',
            time_zone_offset            VARCHAR(8) NOT NULL DEFAULT '+05:30',
            is_employee_code_generation_type_auto BOOLEAN NOT NULL DEFAULT FALSE,
            employee_code_prefix        VARCHAR(20),
            employee_code_from          INTEGER,
            employee_code_current       INTEGER,
            employee_code_to            INTEGER
    """, scoped=False)
    op.execute("CREATE INDEX ix_organisations_admin_id ON organisations(admin_id)")

    # ── 3. auth_sessions ──────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE auth_sessions (
            id                 UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            principal_id       UUID NOT NULL,
            role               VARCHAR(20) NOT NULL,
            organisation_id    UUID,
            token_hash         VARCHAR(128) NOT NULL,
            refresh_token_hash VARCHAR(128),
            ip_address         INET,
            user_agent         TEXT,
            expires_at         TIMESTAMPTZ NOT NULL,
            is_revoked         BOOLEAN NOT NULL DEFAULT FALSE,
            created_at         TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_auth_sessions_token_hash ON auth_sessions(token_hash)")
    op.execute("CREATE INDEX ix_auth_sessions_refresh_token_hash ON auth_sessions(refresh_token_hash)")
    op.execute("CREATE INDEX ix_auth_sessions_principal ON auth_sessions(principal_id, role)")

    # ── 4. branches ───────────────────────────────────────────────────────
    _create_table("branches", """
            name           VARCHAR(200) NOT NULL,
            code           VARCHAR(50) NOT NULL,
            address        TEXT,
            city           VARCHAR(100),
            state          VARCHAR(100),
            country        VARCHAR(100),
            pin_code       VARCHAR(20),
            phone          VARCHAR(20),
            email          VARCHAR(255),
            manager_name   VARCHAR(200),
            latitude       VARCHAR(32),
            longitude      VARCHAR(32),
            is_head_office BOOLEAN NOT NULL DEFAULT FALSE
    """)

    # ── 5. departments / designations ─────────────────────────────────────
    _create_table("departments", """
            name        VARCHAR(200) NOT NULL,
            description TEXT
    """)
    _create_table("designations", """
            name          VARCHAR(200) NOT NULL,
            positions     INTEGER,
            description   TEXT,
            department_id UUID REFERENCES departments(id)
    """)

    # ── 6. attendance configuration ───────────────────────────────────────
    _create_table("shifts", """
            name          VARCHAR(100) NOT NULL,
            start         VARCHAR(5) NOT NULL,
            "end"         VARCHAR(5) NOT NULL,
            grace_minutes INTEGER NOT NULL DEFAULT 0,
            description   TEXT
    """)
    _create_table("attendance_rules", """
            name                      VARCHAR(200) NOT NULL,
            description               TEXT,
            geo_tracking_enabled      BOOLEAN NOT NULL DEFAULT FALSE,
            geo_radius_meters         INTEGER NOT NULL DEFAULT 100,
            latitude                  VARCHAR(32),
            longitude                 VARCHAR(32),
            selfie_required           BOOLEAN NOT NULL DEFAULT FALSE,
            web_attendance_enabled    BOOLEAN NOT NULL DEFAULT TRUE,
            mobile_attendance_enabled BOOLEAN NOT NULL DEFAULT TRUE,
            regularization_enabled    BOOLEAN NOT NULL DEFAULT FALSE,
            grace_period_minutes      INTEGER NOT NULL DEFAULT 0,
            overtime_threshold_hours  DOUBLE PRECISION,
            break_management_enabled  BOOLEAN NOT NULL DEFAULT FALSE
    """)
    _create_table("working_day_rules", """
            name        VARCHAR(100) NOT NULL,
            workweek    VARCHAR(20) NOT NULL DEFAULT 'five_days',
            description TEXT
    """)
    _create_table("holidays", """
            name         VARCHAR(200) NOT NULL,
            date         DATE NOT NULL,
            type         VARCHAR(20) NOT NULL DEFAULT 'normal',
            description  TEXT,
            is_recurring BOOLEAN NOT NULL DEFAULT FALSE
    """)
    op.execute("CREATE INDEX ix_holidays_org_date ON holidays(organisation_id, date)")

    # ── 7. employees ──────────────────────────────────────────────────────
    _create_table("employees", """
            name                VARCHAR(200) NOT NULL,
            code                VARCHAR(50) NOT NULL,
            email               VARCHAR(255) NOT NULL,
            mobile              VARCHAR(20),
            password_hash       VARCHAR(255),
            included_in_payroll BOOLEAN NOT NULL DEFAULT TRUE,
            status              VARCHAR(20) NOT NULL DEFAULT 'active',
            date_of_birth       DATE,
            gender              VARCHAR(20),
            address             TEXT,
            city                VARCHAR(100),
            state               VARCHAR(100),
            country             VARCHAR(100),
            pin_code            VARCHAR(20),
            emergency_contact   VARCHAR(100),
            pan_number          VARCHAR(20),
            adhaar_number       VARCHAR(20),
            image               VARCHAR(500),
            joining_date        DATE,
            department_id       UUID REFERENCES departments(id),
            designation_id      UUID REFERENCES designations(id),
            shift_id            UUID REFERENCES shifts(id),
            attendance_rule_id  UUID REFERENCES attendance_rules(id),
            branch_id           UUID REFERENCES branches(id),
            bank_details        JSONB,
            ctc                 NUMERIC(12, 2),
            basic_salary        NUMERIC(12, 2),
            otp_hash            VARCHAR(128),
            otp_expires_at      TIMESTAMPTZ,
            last_login_at       TIMESTAMPTZ
    """)
    op.execute("CREATE INDEX ix_employees_org_code ON employees(organisation_id, code)")
    op.execute("CREATE INDEX ix_employees_email ON employees(email)")
    op.execute("CREATE INDEX ix_employees_mobile ON employees(mobile)")
    op.execute("CREATE INDEX ix_employees_name_trgm ON employees USING gin (name gin_trgm_ops)")

    _create_table("employee_documents", """
            employee_id   UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            document_type VARCHAR(30) NOT NULL DEFAULT 'other',
            file_name     VARCHAR(255) NOT NULL,
            stored_name   VARCHAR(100) NOT NULL,
            content_type  VARCHAR(100) NOT NULL,
            size_bytes    INTEGER NOT NULL
    """)
    op.execute("CREATE INDEX ix_employee_documents_employee_id ON employee_documents(employee_id)")

    # ── 8. attendance_records ─────────────────────────────────────────────
    _create_table("attendance_records", """
            employee_id     UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            date            DATE NOT NULL,
            status          VARCHAR(20) NOT NULL DEFAULT 'present',
            check_in_time   TIME,
            check_out_time  TIME,
            total_hours     DOUBLE PRECISION,
            late_minutes    INTEGER NOT NULL DEFAULT 0,
            early_departure BOOLEAN NOT NULL DEFAULT FALSE,
            source          VARCHAR(20) NOT NULL DEFAULT 'web',
            notes           TEXT
    """)
    op.execute("CREATE INDEX ix_attendance_records_employee_date ON attendance_records(employee_id, date)")
    op.execute("CREATE INDEX ix_attendance_records_org_date ON attendance_records(organisation_id, date)")

    # ── 9. leave ──────────────────────────────────────────────────────────
    _create_table("leave_types", """
            name                    VARCHAR(100) NOT NULL,
            code                    VARCHAR(20) NOT NULL,
            description             TEXT,
            color                   VARCHAR(20),
            icon                    VARCHAR(50),
            category                VARCHAR(50),
            accrual_method          VARCHAR(20) NOT NULL DEFAULT 'none',
            accrual_rate            DOUBLE PRECISION,
            initial_balance         DOUBLE PRECISION,
            max_balance             DOUBLE PRECISION,
            allow_carry_forward     BOOLEAN NOT NULL DEFAULT FALSE,
            carry_forward_limit     DOUBLE PRECISION,
            allow_encashment        BOOLEAN NOT NULL DEFAULT FALSE,
            requires_approval       BOOLEAN NOT NULL DEFAULT TRUE,
            requires_documentation  BOOLEAN NOT NULL DEFAULT FALSE,
            min_advance_notice_days INTEGER,
            max_consecutive_days    INTEGER
    """)
    _create_table("leave_requests", """
            employee_id       UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            leave_id          UUID NOT NULL REFERENCES leave_types(id),
            start_date        DATE NOT NULL,
            end_date          DATE NOT NULL,
            total_days        DOUBLE PRECISION NOT NULL,
            is_half_day       BOOLEAN NOT NULL DEFAULT FALSE,
            half_day_period   VARCHAR(20),
            reason            TEXT,
            comments          TEXT,
            status            VARCHAR(20) NOT NULL DEFAULT 'PENDING',
            handover_to       UUID REFERENCES employees(id),
            handover_notes    TEXT,
            approved_by       UUID,
            approver_comments TEXT,
            approved_at       TIMESTAMPTZ,
            rejected_at       TIMESTAMPTZ,
            cancelled_at      TIMESTAMPTZ,
            CHECK (end_date >= start_date)
    """)
    op.execute("CREATE INDEX ix_leave_requests_employee_id ON leave_requests(employee_id)")
    op.execute("CREATE INDEX ix_leave_requests_org_status ON leave_requests(organisation_id, status)")

    # ── 10. payroll ───────────────────────────────────────────────────────
    _create_table("salary_component_types", """
            name        VARCHAR(100) NOT NULL,
            type        VARCHAR(20) NOT NULL DEFAULT 'EARNING',
            sequence    INTEGER NOT NULL DEFAULT 0,
            description TEXT
    """)
    _create_table("salary_components", """
            employee_id              UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            salary_component_type_id UUID NOT NULL REFERENCES salary_component_types(id),
            calculation              VARCHAR(20) NOT NULL DEFAULT 'FIXED',
            value                    NUMERIC(12, 2) NOT NULL DEFAULT 0,
            formula                  VARCHAR(255),
            is_taxable               BOOLEAN NOT NULL DEFAULT TRUE
    """)
    op.execute("CREATE INDEX ix_salary_components_employee_id ON salary_components(employee_id)")
    _create_table("payroll_cycles", """
            name             VARCHAR(100) NOT NULL,
            pay_period_start DATE NOT NULL,
            pay_period_end   DATE NOT NULL,
            status           VARCHAR(20) NOT NULL DEFAULT 'DRAFT',
            salary_month     INTEGER NOT NULL CHECK (salary_month BETWEEN 1 AND 12),
            salary_year      INTEGER NOT NULL,
            working_days     INTEGER,
            amount           NUMERIC(14, 2) NOT NULL DEFAULT 0,
            CHECK (pay_period_end >= pay_period_start)
    """)
    _create_table("payrolls", """
            employee_id      UUID NOT NULL REFERENCES employees(id) ON DELETE CASCADE,
            payroll_cycle_id UUID NOT NULL REFERENCES payroll_cycles(id) ON DELETE CASCADE,
            status           VARCHAR(20) NOT NULL DEFAULT 'DRAFT',
            working_days     INTEGER,
            present_days     DOUBLE PRECISION,
            absent_days      DOUBLE PRECISION,
            leave_days       DOUBLE PRECISION,
            basic_salary     NUMERIC(12, 2) NOT NULL DEFAULT 0,
            total_allowances NUMERIC(12, 2) NOT NULL DEFAULT 0,
            total_deductions NUMERIC(12, 2) NOT NULL DEFAULT 0,
            gross_salary     NUMERIC(12, 2) NOT NULL DEFAULT 0,
            net_salary       NUMERIC(12, 2) NOT NULL DEFAULT 0,
            payment_date     DATE,
            payment_method   VARCHAR(30),
            remarks          TEXT
    """)
    op.execute("CREATE INDEX ix_payrolls_employee_id ON payrolls(employee_id)")
    op.execute("CREATE INDEX ix_payrolls_payroll_cycle_id ON payrolls(payroll_cycle_id)")

    # ── 11. audit_trail ───────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE audit_trail (
            id              UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
            organisation_id UUID,
            actor_id        UUID,
            actor_role      VARCHAR(20),
            action          VARCHAR(50) NOT NULL,
            entity_type     VARCHAR(50) NOT NULL,
            entity_id       UUID NOT NULL,
            old_values      JSONB,
            new_values      JSONB,
            ip_address      INET,
            user_agent      TEXT,
            created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_audit_trail_organisation_id ON audit_trail(organisation_id)")
    op.execute("CREATE INDEX ix_audit_trail_entity ON audit_trail(entity_type, entity_id)")
    op.execute("CREATE INDEX ix_audit_trail_created_at ON audit_trail(created_at)")


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    # Drop tables in reverse dependency order
    tables = [
        "audit_trail",
        "payrolls",
        "payroll_cycles",
        "salary_components",
        "salary_component_types",
        "leave_requests",
        "leave_types",
        "attendance_records",
        "employee_documents",
        "employees",
        "holidays",
        "working_day_rules",
        "attendance_rules",
        "shifts",
        "designations",
        "departments",
        "branches",
        "auth_sessions",
        "organisations",
        "admins",
    ]
    for t in tables:
        op.execute(f"DROP TABLE IF EXISTS {t} CASCADE")

    # Drop extensions
    op.execute('DROP EXTENSION IF EXISTS "pg_trgm"')
    op.execute('DROP EXTENSION IF EXISTS "uuid-ossp"')

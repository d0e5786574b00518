"""
Database schema for BriefMate.
Designed for Supabase (Postgres). Auth users live in Supabase; the owners
table mirrors them by id.

Tables:
- owners: account + subscription snapshot (written by the webhook reconciler)
- clients: owner-curated contacts (ClientReference mode)
- briefs: the briefs themselves, with public uuid and validation code

Key design decisions:
1. public_uuid and validation_code are set on insert and never updated
2. Gated creations lock the owner row (SELECT ... FOR UPDATE)
3. Deleting an owner cascades to everything they own
4. The deadline column type follows the deployment's DEADLINE_UNIT
"""

from ..config import DEADLINE_UNIT_DATETIME


_SCHEMA_TEMPLATE = """
-- Owners
-- Mirrors Supabase auth users; subscription columns are a local snapshot
CREATE TABLE IF NOT EXISTS owners (
    id TEXT PRIMARY KEY,
    email TEXT UNIQUE NOT NULL,
    language TEXT NOT NULL DEFAULT 'fr' CHECK (language IN ('fr', 'en')),
    created_at TIMESTAMPTZ DEFAULT NOW(),
    subscription_active BOOLEAN NOT NULL DEFAULT FALSE,
    cancel_at_period_end BOOLEAN NOT NULL DEFAULT FALSE,
    current_period_end TIMESTAMPTZ,
    price_id TEXT,
    billing_customer_ref TEXT,
    billing_subscription_ref TEXT
);

-- Clients
CREATE TABLE IF NOT EXISTS clients (
    id SERIAL PRIMARY KEY,
    owner_id TEXT REFERENCES owners(id) ON DELETE CASCADE NOT NULL,
    name TEXT NOT NULL,
    email TEXT NOT NULL,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

-- Briefs
CREATE TABLE IF NOT EXISTS briefs (
    id SERIAL PRIMARY KEY,
    public_uuid UUID UNIQUE NOT NULL,
    owner_id TEXT REFERENCES owners(id) ON DELETE CASCADE NOT NULL,
    title TEXT NOT NULL,
    description VARCHAR(5000),
    objectives TEXT[] NOT NULL DEFAULT '{{}}',
    target_audience TEXT,
    budget TEXT,
    deadline {deadline_type},
    deliverables TEXT[] NOT NULL DEFAULT '{{}}',
    constraints TEXT,
    client_id INTEGER REFERENCES clients(id) ON DELETE SET NULL,
    client_name TEXT,
    client_email TEXT,
    client_validated BOOLEAN NOT NULL DEFAULT FALSE,
    validation_code TEXT NOT NULL CHECK (validation_code ~ '^[0-9]{{6}}$'),
    validated_at TIMESTAMPTZ,
    status TEXT NOT NULL DEFAULT 'DRAFT' CHECK (
        status IN ('DRAFT', 'SUBMITTED', 'VALIDATED')
    ),
    created_at TIMESTAMPTZ DEFAULT NOW(),
    updated_at TIMESTAMPTZ DEFAULT NOW(),

    -- Client validation always carries its timestamp
    CHECK (NOT client_validated OR validated_at IS NOT NULL)
);

-- Row Level Security: only the service role touches these tables
ALTER TABLE owners ENABLE ROW LEVEL SECURITY;
ALTER TABLE clients ENABLE ROW LEVEL SECURITY;
ALTER TABLE briefs ENABLE ROW LEVEL SECURITY;
"""

INDEXES_SQL = """
-- Performance indexes
CREATE INDEX IF NOT EXISTS idx_owners_customer_ref ON owners(billing_customer_ref);

CREATE INDEX IF NOT EXISTS idx_clients_owner ON clients(owner_id);

CREATE INDEX IF NOT EXISTS idx_briefs_owner ON briefs(owner_id);
CREATE INDEX IF NOT EXISTS idx_briefs_owner_status ON briefs(owner_id, status);
CREATE INDEX IF NOT EXISTS idx_briefs_owner_created ON briefs(owner_id, created_at DESC);
"""


def render_schema(deadline_unit: str) -> str:
    """Schema SQL with the deadline column typed for the deployment."""
    deadline_type = "TIMESTAMPTZ" if deadline_unit == DEADLINE_UNIT_DATETIME else "DATE"
    return _SCHEMA_TEMPLATE.format(deadline_type=deadline_type)


SCHEMA_SQL = render_schema("date")

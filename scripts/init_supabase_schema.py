#!/usr/bin/env python3
"""
Initialize Supabase database schema with direct PostgreSQL connection

Creates the ticket tables and the two functions the application calls
through Supabase RPC:
- next_ticket_sequence(p_day): atomic per-day counter for display numbers
- set_default_ticket_category(p_name): single-transaction default switch
"""
import os
import psycopg2
from dotenv import load_dotenv

load_dotenv()

TABLES = ['ticket_categories', 'tickets', 'ticket_comments', 'ticket_sequences']


def get_connection():
    """Get PostgreSQL connection using .env variables"""
    host = os.getenv("SUPABASE_DB_HOST")
    port = int(os.getenv("SUPABASE_DB_PORT", "6543"))
    database = os.getenv("SUPABASE_DB_NAME", "postgres")
    user = os.getenv("SUPABASE_DB_USER")
    password = os.getenv("SUPABASE_DB_PASSWORD")

    print(f"🔗 Connecting to: {host}:{port}")
    print(f"   Database: {database}")
    print(f"   User: {user}")

    return psycopg2.connect(
        host=host,
        port=port,
        database=database,
        user=user,
        password=password
    )


def create_schema():
    """Create database schema"""

    ddl_sql = """
    -- Ticket categories (SLA registry)
    CREATE TABLE IF NOT EXISTS ticket_categories (
        name TEXT PRIMARY KEY CHECK (char_length(name) BETWEEN 1 AND 50),
        description TEXT,
        is_active BOOLEAN NOT NULL DEFAULT TRUE,
        is_default BOOLEAN NOT NULL DEFAULT FALSE,
        auto_assign_to TEXT,
        sla_response_hours INTEGER NOT NULL DEFAULT 24,
        sla_resolution_hours INTEGER NOT NULL DEFAULT 72,
        default_priority TEXT NOT NULL DEFAULT 'medium'
            CHECK (default_priority IN ('low', 'medium', 'high', 'urgent')),
        default_tags TEXT[] NOT NULL DEFAULT '{}',
        created_at TIMESTAMPTZ DEFAULT NOW()
    );

    -- At most one default category
    CREATE UNIQUE INDEX IF NOT EXISTS uq_ticket_categories_default
        ON ticket_categories (is_default) WHERE is_default;

    -- Tickets
    CREATE TABLE IF NOT EXISTS tickets (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        display_number TEXT NOT NULL UNIQUE,
        subject TEXT NOT NULL,
        description TEXT NOT NULL,
        category TEXT NOT NULL DEFAULT 'general',
        priority TEXT NOT NULL DEFAULT 'medium'
            CHECK (priority IN ('low', 'medium', 'high', 'urgent')),
        status TEXT NOT NULL DEFAULT 'open'
            CHECK (status IN ('open', 'in_progress', 'pending_customer', 'resolved', 'closed')),
        requester_id TEXT NOT NULL,
        assignee_id TEXT,
        external_id BIGINT UNIQUE,
        external_url TEXT,
        contact_email TEXT NOT NULL,
        contact_phone TEXT,
        tags TEXT[] NOT NULL DEFAULT '{}',
        source TEXT NOT NULL DEFAULT 'web'
            CHECK (source IN ('web', 'email', 'phone', 'api', 'freshdesk')),
        first_response_at TIMESTAMPTZ,
        resolved_at TIMESTAMPTZ,
        closed_at TIMESTAMPTZ,
        status_history JSONB NOT NULL DEFAULT '[]'::jsonb,
        created_at TIMESTAMPTZ DEFAULT NOW(),
        updated_at TIMESTAMPTZ DEFAULT NOW()
    );

    -- Ticket comments
    CREATE TABLE IF NOT EXISTS ticket_comments (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        ticket_id UUID NOT NULL REFERENCES tickets(id) ON DELETE CASCADE,
        author_id TEXT NOT NULL,
        content TEXT NOT NULL,
        type TEXT NOT NULL DEFAULT 'comment'
            CHECK (type IN ('comment', 'note', 'system', 'resolution')),
        is_public BOOLEAN NOT NULL DEFAULT TRUE,
        is_internal BOOLEAN NOT NULL DEFAULT FALSE,
        external_id BIGINT UNIQUE,
        created_at TIMESTAMPTZ DEFAULT NOW()
    );

    -- Per-day display number counters
    CREATE TABLE IF NOT EXISTS ticket_sequences (
        day DATE PRIMARY KEY,
        value INTEGER NOT NULL
    );

    -- Indexes for performance
    CREATE INDEX IF NOT EXISTS idx_tickets_requester_status ON tickets(requester_id, status);
    CREATE INDEX IF NOT EXISTS idx_tickets_assignee_status ON tickets(assignee_id, status);
    CREATE INDEX IF NOT EXISTS idx_tickets_category_priority ON tickets(category, priority);
    CREATE INDEX IF NOT EXISTS idx_tickets_created_at ON tickets(created_at DESC);
    CREATE INDEX IF NOT EXISTS idx_ticket_comments_ticket ON ticket_comments(ticket_id, created_at);
    """

    functions_sql = """
    -- Atomic increment-and-read; concurrent callers serialize on the row lock
    CREATE OR REPLACE FUNCTION next_ticket_sequence(p_day DATE)
    RETURNS INTEGER
    LANGUAGE sql
    AS $$
        INSERT INTO ticket_sequences (day, value)
        VALUES (p_day, 1)
        ON CONFLICT (day) DO UPDATE SET value = ticket_sequences.value + 1
        RETURNING value;
    $$;

    -- Clear the previous default and set the new one in one transaction
    CREATE OR REPLACE FUNCTION set_default_ticket_category(p_name TEXT)
    RETURNS SETOF ticket_categories
    LANGUAGE plpgsql
    AS $$
    BEGIN
        IF NOT EXISTS (SELECT 1 FROM ticket_categories WHERE name = p_name) THEN
            RETURN;
        END IF;

        UPDATE ticket_categories SET is_default = FALSE
        WHERE is_default AND name <> p_name;

        RETURN QUERY
        UPDATE ticket_categories SET is_default = TRUE
        WHERE name = p_name
        RETURNING *;
    END;
    $$;
    """

    conn = None
    try:
        conn = get_connection()
        cur = conn.cursor()

        print("🔧 Creating database schema...")
        cur.execute(ddl_sql)
        conn.commit()
        print("✅ DDL executed successfully")

        print("⚙️ Creating RPC functions...")
        cur.execute(functions_sql)
        conn.commit()
        print("✅ Functions created")

        # Verify tables
        cur.execute("""
            SELECT table_name
            FROM information_schema.tables
            WHERE table_schema = 'public'
            AND table_name = ANY(%s)
            ORDER BY table_name
        """, (TABLES,))
        tables = cur.fetchall()

        print("\n📊 Created tables:")
        for table in tables:
            print(f"  - {table[0]}")

        cur.close()
        return True

    except Exception as e:
        print(f"❌ Error: {str(e)}")
        if conn:
            conn.rollback()
        return False
    finally:
        if conn:
            conn.close()


if __name__ == "__main__":
    import sys
    success = create_schema()
    sys.exit(0 if success else 1)

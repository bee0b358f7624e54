"""
Schema for the stocks table.

Creates the table if it does not already exist and keeps the column
enumeration the data-access layer validates identifiers against.
"""

STOCKS_TABLE = "stocks"

# Known columns per table; DataStore refuses identifiers not listed here.
TABLES: dict[str, tuple[str, ...]] = {
    STOCKS_TABLE: ("id", "symbol", "name", "price", "cik", "updated_at"),
}

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS stocks (
    id          SERIAL PRIMARY KEY,
    symbol      VARCHAR(10) UNIQUE,
    name        VARCHAR(255) NOT NULL,
    price       NUMERIC(10,2),
    cik         INTEGER UNIQUE,
    updated_at  TIMESTAMPTZ NOT NULL DEFAULT clock_timestamp()
);

-- Refresh updated_at on every update unless the writer set it explicitly
CREATE OR REPLACE FUNCTION stocks_touch_updated_at() RETURNS trigger AS $$
BEGIN
    IF NEW.updated_at IS NOT DISTINCT FROM OLD.updated_at THEN
        NEW.updated_at := clock_timestamp();
    END IF;
    RETURN NEW;
END;
$$ LANGUAGE plpgsql;

-- Created only when absent; CREATE TRIGGER takes a SHARE ROW EXCLUSIVE lock
DO $do$
BEGIN
    IF NOT EXISTS (
        SELECT 1 FROM pg_trigger
        WHERE tgname = 'stocks_touch_updated_at'
          AND tgrelid = 'stocks'::regclass
    ) THEN
        CREATE TRIGGER stocks_touch_updated_at
            BEFORE UPDATE ON stocks
            FOR EACH ROW EXECUTE FUNCTION stocks_touch_updated_at();
    END IF;
END
$do$;
"""

SEED_SQL = """
INSERT INTO stocks (symbol, name, price, cik) VALUES
    ('AAPL', 'Apple Inc.', 150.00, 320193),
    ('GOOGL', 'Alphabet Inc.', 2800.00, 1652044),
    ('MSFT', 'Microsoft Corporation', 300.00, 789019)
"""

COUNT_SQL = "SELECT COUNT(*) AS count FROM stocks"

SCHEMA_SQL = r"""
-- Users (plaintext passwords, role gating only)
CREATE TABLE IF NOT EXISTS users (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  username TEXT NOT NULL UNIQUE COLLATE NOCASE,
  password TEXT NOT NULL,
  name TEXT NOT NULL,
  initials TEXT,
  role TEXT NOT NULL DEFAULT 'user',     -- admin / user
  created_at TEXT
);

CREATE TABLE IF NOT EXISTS customers (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  name TEXT NOT NULL,
  country TEXT,
  contact_person TEXT,
  email TEXT,
  phone TEXT,
  created_by TEXT,
  created_at TEXT
);

CREATE TABLE IF NOT EXISTS suppliers (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  name TEXT NOT NULL,
  country TEXT,
  email TEXT,
  phone TEXT,
  created_by TEXT,
  created_at TEXT
);

-- Purchases (units in packs, cost per pack)
CREATE TABLE IF NOT EXISTS purchases (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  supplier_id INTEGER,
  supplier TEXT NOT NULL,
  size TEXT NOT NULL,                    -- 5ml / 10ml / 100ml
  batch_number TEXT NOT NULL,
  expiry_date TEXT,                      -- ISO date
  units REAL NOT NULL,
  cost REAL NOT NULL,
  purchase_date TEXT,
  created_by TEXT,
  created_at TEXT
);

-- Sales (units in packs, price per pack)
CREATE TABLE IF NOT EXISTS sales (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  customer_id INTEGER,
  customer TEXT NOT NULL,
  country TEXT,
  end_destination TEXT,
  size TEXT NOT NULL,
  batch_number TEXT,
  units REAL NOT NULL,
  price REAL NOT NULL,
  sale_date TEXT,

  -- lineage when a stock hold is converted
  converted_from TEXT,
  original_hold_id INTEGER,
  converted_by TEXT,

  created_by TEXT,
  created_at TEXT
);

-- Stock holds (committed, not yet sold)
CREATE TABLE IF NOT EXISTS stock_holds (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  customer_id INTEGER,
  customer TEXT NOT NULL,
  country TEXT,
  end_destination TEXT,
  size TEXT NOT NULL,
  units REAL NOT NULL,
  vials INTEGER,
  notes TEXT,
  hold_date TEXT,

  -- lineage when a converted sale is reverted
  reverted_from TEXT,
  original_sale_id INTEGER,
  reverted_by TEXT,

  created_by TEXT,
  created_at TEXT
);

-- Samples / write-offs
CREATE TABLE IF NOT EXISTS stock_adjustments (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  size TEXT NOT NULL,
  batch_number TEXT NOT NULL,
  units REAL NOT NULL,
  vials INTEGER,
  reason TEXT NOT NULL,
  recipient TEXT,
  notes TEXT,
  cost_per_pack REAL NOT NULL DEFAULT 0,  -- snapshot of batch cost
  total_cost REAL NOT NULL DEFAULT 0,
  adjustment_date TEXT,
  created_by TEXT,
  created_at TEXT
);

-- Incoming purchase orders
CREATE TABLE IF NOT EXISTS pipeline_purchases (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  po_number TEXT NOT NULL,
  supplier TEXT NOT NULL,
  size TEXT NOT NULL,
  units REAL NOT NULL,
  price REAL NOT NULL,
  total_value REAL NOT NULL,
  expected_date TEXT,
  status TEXT NOT NULL DEFAULT 'Ordered', -- Ordered / In Transit / Delayed / Received
  created_by TEXT,
  created_at TEXT
);

-- Local blob store (one JSON array per collection)
CREATE TABLE IF NOT EXISTS kv_store (
  key TEXT PRIMARY KEY,
  value TEXT NOT NULL
);
"""

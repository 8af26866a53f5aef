"""Database schema initialization for the tracker store."""

from __future__ import annotations


INIT_SCHEMA = """
-- Billing code catalog
CREATE TABLE IF NOT EXISTS billing_codes (
    code TEXT PRIMARY KEY,
    description TEXT,
    points REAL DEFAULT 0,
    price REAL DEFAULT 0,
    related_test_name TEXT,
    legacy_next_action_days INTEGER
);

-- Protocol definitions
CREATE TABLE IF NOT EXISTS protocols (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- Ordered protocol steps
CREATE TABLE IF NOT EXISTS protocol_steps (
    protocol_id TEXT NOT NULL,
    step_number INTEGER NOT NULL,
    required_code TEXT NOT NULL,
    days_after_previous INTEGER NOT NULL DEFAULT 0,
    note TEXT,
    PRIMARY KEY (protocol_id, step_number),
    FOREIGN KEY (protocol_id) REFERENCES protocols(id) ON DELETE CASCADE
);

-- Patient records; the full record is kept as JSON in `data`
CREATE TABLE IF NOT EXISTS patients (
    id TEXT PRIMARY KEY,
    protocol_no TEXT NOT NULL UNIQUE,
    status TEXT NOT NULL,
    next_scheduled_date DATE,
    data TEXT NOT NULL,
    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- Entry ledger (billing actions and status changes)
CREATE TABLE IF NOT EXISTS entries (
    id TEXT PRIMARY KEY,
    patient_id TEXT NOT NULL,
    entry_date DATE NOT NULL,
    kind TEXT NOT NULL,
    total_points REAL DEFAULT 0,
    total_price REAL DEFAULT 0,
    notes TEXT,
    codes TEXT NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
);

-- Audit trail
CREATE TABLE IF NOT EXISTS audit_log (
    seq INTEGER PRIMARY KEY AUTOINCREMENT,
    id TEXT NOT NULL UNIQUE,
    timestamp TEXT NOT NULL,
    kind TEXT NOT NULL,
    message TEXT NOT NULL
);

-- Tenders; protocol_quotas is a JSON list
CREATE TABLE IF NOT EXISTS tenders (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    start_date DATE NOT NULL,
    end_date DATE NOT NULL,
    total_budget REAL NOT NULL,
    total_patient_quota INTEGER DEFAULT 0,
    protocol_quotas TEXT NOT NULL,
    current_spent REAL DEFAULT 0,
    active INTEGER NOT NULL DEFAULT 1
);

-- Invoices charged against a tender; billed_protocols is a JSON list
CREATE TABLE IF NOT EXISTS invoices (
    id TEXT PRIMARY KEY,
    tender_id TEXT NOT NULL,
    invoice_date DATE NOT NULL,
    amount REAL NOT NULL,
    description TEXT,
    billed_protocols TEXT NOT NULL,
    created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
    FOREIGN KEY (tender_id) REFERENCES tenders(id)
);

-- Indexes
CREATE INDEX IF NOT EXISTS idx_patients_status ON patients(status);
CREATE INDEX IF NOT EXISTS idx_patients_next_date ON patients(next_scheduled_date);
CREATE INDEX IF NOT EXISTS idx_entries_patient ON entries(patient_id);
CREATE INDEX IF NOT EXISTS idx_entries_date ON entries(entry_date);
CREATE INDEX IF NOT EXISTS idx_steps_code ON protocol_steps(required_code);
CREATE INDEX IF NOT EXISTS idx_invoices_tender ON invoices(tender_id);
"""

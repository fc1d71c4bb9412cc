import sqlite3
import json
import os
from datetime import datetime
from typing import Optional, Dict, Any, List


class Database:
    def __init__(self, db_path: str = "data/database.db"):
        self.db_path = db_path
        directory = os.path.dirname(db_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self.init_database()

    def get_connection(self):
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def init_database(self):
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            # Accounts are keyed by address, private keys never stored
            cursor.execute('''
                           CREATE TABLE IF NOT EXISTS accounts (
                               id INTEGER PRIMARY KEY AUTOINCREMENT,
                               address TEXT UNIQUE NOT NULL,
                               proxy TEXT,
                               created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                               updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                           )
                           ''')

            cursor.execute('''
                           CREATE TABLE IF NOT EXISTS runs (
                               id INTEGER PRIMARY KEY AUTOINCREMENT,
                               task_id TEXT NOT NULL,
                               total_accounts INTEGER NOT NULL,
                               succeeded INTEGER,
                               started_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                               finished_at TIMESTAMP
                           )
                           ''')

            cursor.execute('''
                           CREATE TABLE IF NOT EXISTS statistics (
                               id INTEGER PRIMARY KEY AUTOINCREMENT,
                               run_id INTEGER,
                               account_id INTEGER,
                               action_type TEXT NOT NULL,
                               status TEXT NOT NULL,
                               details TEXT,
                               tx_hash TEXT,
                               block_number INTEGER,
                               timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                               FOREIGN KEY (run_id) REFERENCES runs (id),
                               FOREIGN KEY (account_id) REFERENCES accounts (id)
                           )
                           ''')

            cursor.execute('''
                           CREATE INDEX IF NOT EXISTS idx_statistics_account_id
                               ON statistics(account_id)
                           ''')

            conn.commit()

        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def add_account(self, address: str, proxy: Optional[str] = None) -> int:
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute('SELECT id FROM accounts WHERE address = ?', (address,))
            existing = cursor.fetchone()

            if existing:
                cursor.execute('UPDATE accounts SET proxy = ?, updated_at = ? WHERE id = ?',
                               (proxy, datetime.now(), existing['id']))
                conn.commit()
                return existing['id']

            cursor.execute('INSERT INTO accounts (address, proxy) VALUES (?, ?)', (address, proxy))
            account_id = cursor.lastrowid
            conn.commit()
            return account_id

        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def get_all_accounts(self) -> List[Dict[str, Any]]:
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute('SELECT id, address, proxy, created_at FROM accounts ORDER BY id')
            return [dict(row) for row in cursor.fetchall()]

        finally:
            conn.close()

    def start_run(self, task_id: str, total_accounts: int) -> int:
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute('INSERT INTO runs (task_id, total_accounts) VALUES (?, ?)',
                           (str(task_id), total_accounts))
            run_id = cursor.lastrowid
            conn.commit()
            return run_id

        finally:
            conn.close()

    def finish_run(self, run_id: int, succeeded: int):
        conn = self.get_connection()
        try:
            conn.execute('UPDATE runs SET succeeded = ?, finished_at = ? WHERE id = ?',
                         (succeeded, datetime.now(), run_id))
            conn.commit()
        finally:
            conn.close()

    def get_runs(self, limit: int = 20) -> List[Dict[str, Any]]:
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute('''
                           SELECT id, task_id, total_accounts, succeeded, started_at, finished_at
                           FROM runs ORDER BY id DESC LIMIT ?
                           ''', (limit,))
            return [dict(row) for row in cursor.fetchall()]

        finally:
            conn.close()

    def add_statistic(self, account_id: int, action_type: str, status: str,
                      details: Optional[str] = None, tx_hash: Optional[str] = None,
                      block_number: Optional[int] = None, run_id: Optional[int] = None):
        """Add action statistic"""
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute('''
                           INSERT INTO statistics (run_id, account_id, action_type, status, details, tx_hash, block_number)
                           VALUES (?, ?, ?, ?, ?, ?, ?)
                           ''', (run_id, account_id, action_type, status, details, tx_hash, block_number))

            conn.commit()

        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def get_statistics(self, account_id: Optional[int] = None, limit: int = 100) -> List[tuple]:
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            if account_id:
                cursor.execute('''
                               SELECT a.address, s.action_type, s.status, s.details, s.tx_hash, s.block_number, s.timestamp
                               FROM statistics s
                                        JOIN accounts a ON s.account_id = a.id
                               WHERE s.account_id = ?
                               ORDER BY s.id DESC
                                   LIMIT ?
                               ''', (account_id, limit))
            else:
                cursor.execute('''
                               SELECT a.address, s.action_type, s.status, s.details, s.tx_hash, s.block_number, s.timestamp
                               FROM statistics s
                                        JOIN accounts a ON s.account_id = a.id
                               ORDER BY s.id DESC
                                   LIMIT ?
                               ''', (limit,))

            return cursor.fetchall()

        finally:
            conn.close()

    def export_statistics(self, filename: str = "statistics_export.json") -> int:
        """Export statistics to JSON file"""
        stats = self.get_statistics(limit=10000)

        export_data = []
        for row in stats:
            export_data.append({
                'address': row[0],
                'action_type': row[1],
                'status': row[2],
                'details': row[3],
                'tx_hash': row[4],
                'block_number': row[5],
                'timestamp': row[6]
            })

        with open(filename, 'w', encoding='utf-8') as f:
            json.dump(export_data, f, indent=4)

        return len(export_data)

    def get_account_count(self) -> int:
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute('SELECT COUNT(*) FROM accounts')
            return cursor.fetchone()[0]

        finally:
            conn.close()

    def get_success_rate(self) -> Dict[str, Any]:
        conn = self.get_connection()
        cursor = conn.cursor()

        try:
            cursor.execute('''
                           SELECT
                               COUNT(*) as total,
                               SUM(CASE WHEN status = 'success' THEN 1 ELSE 0 END) as success,
                               SUM(CASE WHEN status = 'failed' THEN 1 ELSE 0 END) as failed,
                               SUM(CASE WHEN status = 'skipped' THEN 1 ELSE 0 END) as skipped
                           FROM statistics
                           ''')

            row = cursor.fetchone()

            total = row[0]
            success = row[1] or 0
            failed = row[2] or 0
            skipped = row[3] or 0

            return {
                'total': total,
                'success': success,
                'failed': failed,
                'skipped': skipped,
                'success_rate': (success / total * 100) if total > 0 else 0
            }

        finally:
            conn.close()


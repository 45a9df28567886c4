"""
Academic Store — SQLite-backed data store capability.

Responsibility:
- Implement one operation per catalog action (perform_operation)
- Enforce referential integrity (foreign keys) and uniqueness
- Resolve human identifiers (department name, program name, course code,
  lecturer email) to internal ids
- Bulk user import with per-row error reporting

Performance:
- Persistent SQLite connection (no reconnect per query)
- WAL mode for concurrent reads

Every operation runs in its own transaction. Constraint violations and
not-found lookups are raised as DataError.
"""

import logging
import sqlite3
import threading
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Iterable

from shared.errors import DataError
from shared.models import ImportReport, OperationResult

logger = logging.getLogger(__name__)

COUNTED_TABLES = (
    "profiles",
    "jurusan",
    "program_studi",
    "mahasiswa_details",
    "dosen_details",
    "mata_kuliah",
    "modul_ajar",
    "dosen_mata_kuliah",
)

TABLE_DESCRIPTIONS = (
    ("profiles", "Base record of every user (admin, dosen, mahasiswa)."),
    ("jurusan", "All departments."),
    ("program_studi", "Study programs under a department."),
    ("mahasiswa_details", "Student specifics (NIM, intake year)."),
    ("dosen_details", "Lecturer specifics (NIDN)."),
    ("mata_kuliah", "Courses per study program."),
    ("modul_ajar", "Teaching materials uploaded by lecturers."),
    ("dosen_mata_kuliah", "Lecturer to course assignments."),
)

USER_IMPORT_TEMPLATE: tuple[dict[str, Any], ...] = (
    {
        "email": "mahasiswa.baru@email.com",
        "full_name": "Budi Sanjaya",
        "phone_number": "081234567890",
        "role": "mahasiswa",
        "nim_or_nidn": "3202400001",
        "nama_program_studi": "Teknik Informatika",
        "angkatan": 2024,
    },
    {
        "email": "dosen.baru@email.com",
        "full_name": "Dr. Siti Aminah",
        "phone_number": "089876543210",
        "role": "dosen",
        "nim_or_nidn": "0012345678",
        "nama_program_studi": "Teknik Informatika",
        "angkatan": None,
    },
)

USER_IMPORT_COLUMNS = tuple(USER_IMPORT_TEMPLATE[0].keys())


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _as_list(value: Any) -> list[dict[str, Any]]:
    if isinstance(value, dict):
        return [value]
    return list(value or [])


class AcademicStore:
    """SQLite implementation of every academic records operation."""

    def __init__(self, db_path: str = "academic.db"):
        self.db_path = db_path
        self._conn = sqlite3.connect(
            db_path,
            check_same_thread=False,
            isolation_level="DEFERRED",
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA synchronous=NORMAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._lock = threading.Lock()
        self._init_db()

        self._operations: dict[str, Callable[[dict[str, Any]], OperationResult]] = {
            "getDatabaseSchema": self._get_database_schema,
            "checkTableCounts": self._check_table_counts,
            "addJurusan": self._add_jurusan,
            "showJurusan": self._show_jurusan,
            "updateJurusan": self._update_jurusan,
            "deleteJurusan": self._delete_jurusan,
            "addProdi": self._add_prodi,
            "showProdi": self._show_prodi,
            "updateProdi": self._update_prodi,
            "deleteProdi": self._delete_prodi,
            "addMataKuliah": self._add_mata_kuliah,
            "showMataKuliah": self._show_mata_kuliah,
            "updateMataKuliah": self._update_mata_kuliah,
            "deleteMataKuliah": self._delete_mata_kuliah,
            "addModulAjar": self._add_modul_ajar,
            "showModulAjar": self._show_modul_ajar,
            "updateModulAjar": self._update_modul_ajar,
            "deleteModulAjar": self._delete_modul_ajar,
            "addUser": self._add_user,
            "showUsers": self._show_users,
            "deleteUserByNim": self._delete_user_by_nim,
            "deleteDosenByNidn": self._delete_dosen_by_nidn,
            "assignDosenToMataKuliah": self._assign_dosen,
            "showDosenMataKuliah": self._show_dosen_mata_kuliah,
            "unassignDosenFromMataKuliah": self._unassign_dosen,
            "getAddUserTemplate": self._get_add_user_template,
        }

    def _init_db(self) -> None:
        """Create tables if they don't exist."""
        self._conn.executescript("""
            CREATE TABLE IF NOT EXISTS jurusan (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                kode_jurusan TEXT UNIQUE,
                created_at TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS program_studi (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                jurusan_id INTEGER NOT NULL REFERENCES jurusan(id) ON DELETE RESTRICT,
                name TEXT NOT NULL UNIQUE,
                jenjang TEXT NOT NULL,
                kode_prodi_internal TEXT,
                created_at TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS mata_kuliah (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                prodi_id INTEGER NOT NULL REFERENCES program_studi(id) ON DELETE RESTRICT,
                name TEXT NOT NULL,
                kode_mk TEXT UNIQUE,
                semester INTEGER NOT NULL,
                created_at TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS profiles (
                id TEXT PRIMARY KEY,
                email TEXT NOT NULL UNIQUE,
                full_name TEXT NOT NULL,
                phone_number TEXT,
                role TEXT NOT NULL CHECK (role IN ('admin', 'dosen', 'mahasiswa')),
                created_at TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS mahasiswa_details (
                profile_id TEXT PRIMARY KEY REFERENCES profiles(id) ON DELETE CASCADE,
                nim TEXT NOT NULL UNIQUE,
                prodi_id INTEGER NOT NULL REFERENCES program_studi(id) ON DELETE RESTRICT,
                angkatan INTEGER NOT NULL
            );
            CREATE TABLE IF NOT EXISTS dosen_details (
                profile_id TEXT PRIMARY KEY REFERENCES profiles(id) ON DELETE CASCADE,
                nidn TEXT UNIQUE,
                prodi_id INTEGER NOT NULL REFERENCES program_studi(id) ON DELETE RESTRICT
            );
            CREATE TABLE IF NOT EXISTS modul_ajar (
                id TEXT PRIMARY KEY,
                mata_kuliah_id INTEGER NOT NULL REFERENCES mata_kuliah(id) ON DELETE CASCADE,
                dosen_id TEXT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
                title TEXT NOT NULL,
                file_url TEXT NOT NULL,
                angkatan INTEGER,
                created_at TEXT NOT NULL
            );
            CREATE TABLE IF NOT EXISTS dosen_mata_kuliah (
                dosen_profile_id TEXT NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
                mata_kuliah_id INTEGER NOT NULL REFERENCES mata_kuliah(id) ON DELETE CASCADE,
                created_at TEXT NOT NULL,
                PRIMARY KEY (dosen_profile_id, mata_kuliah_id)
            );
        """)
        self._conn.commit()

    # ─── Capability ────────────────────────────────────────────

    def supported_actions(self) -> list[str]:
        return list(self._operations.keys())

    def perform_operation(self, action_name: str, args: dict[str, Any]) -> OperationResult:
        """Run one catalog action inside its own transaction."""
        handler = self._operations.get(action_name)
        if handler is None:
            raise DataError(f"Operation '{action_name}' is not supported by the data store.")
        with self._lock:
            return self._transaction(handler, dict(args or {}))

    def _transaction(self, handler: Callable[[dict[str, Any]], OperationResult], args: dict[str, Any]):
        try:
            with self._conn:
                return handler(args)
        except sqlite3.IntegrityError as e:
            raise DataError(_integrity_message(e)) from e
        except sqlite3.Error as e:
            raise DataError(f"Database error: {e}") from e

    def import_users(self, rows: Iterable[dict[str, Any]]) -> ImportReport:
        """Add users one by one; a failing row is reported, not fatal."""
        total = 0
        success_count = 0
        errors: list[str] = []
        for row in rows:
            total += 1
            email = str(row.get("email") or f"row {total}").strip()
            try:
                user = _normalize_user_row(row)
                with self._lock:
                    self._transaction(self._add_user, user)
                success_count += 1
            except DataError as e:
                errors.append(f"Failed for email {email}: {e}")
        logger.info("User import finished: %d/%d rows added", success_count, total)
        return ImportReport(total_rows=total, success_count=success_count, errors=errors)

    def table_counts(self) -> dict[str, int]:
        with self._lock:
            return {
                table: self._conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
                for table in COUNTED_TABLES
            }

    def close(self) -> None:
        """Close the persistent connection."""
        self._conn.close()

    # ─── Lookups ───────────────────────────────────────────────

    def _jurusan_id(self, name: str) -> int:
        row = self._conn.execute("SELECT id FROM jurusan WHERE name = ?", (name,)).fetchone()
        if row is None:
            raise DataError(f"Jurusan '{name}' not found.")
        return row["id"]

    def _prodi_id(self, name: str) -> int:
        row = self._conn.execute("SELECT id FROM program_studi WHERE name = ?", (name,)).fetchone()
        if row is None:
            raise DataError(f"Program studi '{name}' not found.")
        return row["id"]

    def _mata_kuliah_id(self, kode_mk: str) -> int:
        row = self._conn.execute("SELECT id FROM mata_kuliah WHERE kode_mk = ?", (kode_mk,)).fetchone()
        if row is None:
            raise DataError(f"Mata kuliah with code '{kode_mk}' not found.")
        return row["id"]

    def _dosen_id(self, email: str) -> str:
        row = self._conn.execute(
            "SELECT id FROM profiles WHERE email = ? AND role = 'dosen'", (email,)
        ).fetchone()
        if row is None:
            raise DataError(f"Dosen with email '{email}' not found.")
        return row["id"]

    def _update(self, table: str, changes: dict[str, Any], where: str, key: Any) -> int:
        if not changes:
            raise DataError("Nothing to update: new_data is empty.")
        assignments = ", ".join(f"{column} = ?" for column in changes)
        cursor = self._conn.execute(
            f"UPDATE {table} SET {assignments} WHERE {where} = ?",
            (*changes.values(), key),
        )
        return cursor.rowcount

    # ─── Meta ──────────────────────────────────────────────────

    def _get_database_schema(self, args: dict[str, Any]) -> OperationResult:
        return OperationResult(
            rows=[{"table": table, "description": description} for table, description in TABLE_DESCRIPTIONS]
        )

    def _check_table_counts(self, args: dict[str, Any]) -> OperationResult:
        rows = [
            {"table": table, "count": self._conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]}
            for table in COUNTED_TABLES
        ]
        return OperationResult(rows=rows)

    def _get_add_user_template(self, args: dict[str, Any]) -> OperationResult:
        return OperationResult(rows=[dict(row) for row in USER_IMPORT_TEMPLATE])

    # ─── Jurusan ───────────────────────────────────────────────

    def _add_jurusan(self, args: dict[str, Any]) -> OperationResult:
        items = _as_list(args.get("jurusan_data"))
        if not items:
            raise DataError("No jurusan data given.")
        for item in items:
            self._conn.execute(
                "INSERT INTO jurusan (name, kode_jurusan, created_at) VALUES (?, ?, ?)",
                (item["name"], item.get("kode_jurusan"), _now()),
            )
        return OperationResult(affected=len(items), message=f"{len(items)} jurusan added.")

    def _show_jurusan(self, args: dict[str, Any]) -> OperationResult:
        rows = self._conn.execute("SELECT name, kode_jurusan FROM jurusan ORDER BY id").fetchall()
        return OperationResult(
            rows=[{"Nama Jurusan": row["name"], "Kode": row["kode_jurusan"] or "-"} for row in rows]
        )

    def _update_jurusan(self, args: dict[str, Any]) -> OperationResult:
        current = args["current_name"]
        new_data = args.get("new_data") or {}
        changes = {key: new_data[key] for key in ("name", "kode_jurusan") if key in new_data}
        if self._update("jurusan", changes, "name", current) == 0:
            raise DataError(f"Jurusan '{current}' not found.")
        return OperationResult(affected=1, message=f"Jurusan '{current}' updated.")

    def _delete_jurusan(self, args: dict[str, Any]) -> OperationResult:
        name = args["name"]
        cursor = self._conn.execute("DELETE FROM jurusan WHERE name = ?", (name,))
        if cursor.rowcount == 0:
            raise DataError(f"Jurusan '{name}' not found.")
        return OperationResult(affected=cursor.rowcount, message=f"Jurusan '{name}' deleted.")

    # ─── Program Studi ─────────────────────────────────────────

    def _add_prodi(self, args: dict[str, Any]) -> OperationResult:
        items = _as_list(args.get("prodi_data"))
        if not items:
            raise DataError("No program studi data given.")
        for item in items:
            jurusan_id = self._jurusan_id(item["nama_jurusan"])
            self._conn.execute(
                """INSERT INTO program_studi (jurusan_id, name, jenjang, kode_prodi_internal, created_at)
                   VALUES (?, ?, ?, ?, ?)""",
                (jurusan_id, item["name"], item["jenjang"], item.get("kode_prodi_internal"), _now()),
            )
        return OperationResult(affected=len(items), message=f"{len(items)} program studi added.")

    def _show_prodi(self, args: dict[str, Any]) -> OperationResult:
        query = """SELECT p.name, p.jenjang, p.kode_prodi_internal, j.name AS jurusan
                   FROM program_studi p JOIN jurusan j ON j.id = p.jurusan_id"""
        params: list[Any] = []
        if args.get("nama_jurusan"):
            query += " WHERE j.name LIKE ?"
            params.append(f"%{args['nama_jurusan']}%")
        rows = self._conn.execute(query + " ORDER BY p.id", params).fetchall()
        return OperationResult(
            rows=[
                {
                    "Nama Prodi": row["name"],
                    "Jenjang": row["jenjang"],
                    "Kode": row["kode_prodi_internal"] or "-",
                    "Jurusan": row["jurusan"],
                }
                for row in rows
            ]
        )

    def _update_prodi(self, args: dict[str, Any]) -> OperationResult:
        current = args["current_name"]
        new_data = dict(args.get("new_data") or {})
        changes = {key: new_data[key] for key in ("name", "jenjang", "kode_prodi_internal") if key in new_data}
        if new_data.get("nama_jurusan"):
            changes["jurusan_id"] = self._jurusan_id(new_data["nama_jurusan"])
        if self._update("program_studi", changes, "name", current) == 0:
            raise DataError(f"Program studi '{current}' not found.")
        return OperationResult(affected=1, message=f"Program studi '{current}' updated.")

    def _delete_prodi(self, args: dict[str, Any]) -> OperationResult:
        name = args["name"]
        cursor = self._conn.execute("DELETE FROM program_studi WHERE name = ?", (name,))
        if cursor.rowcount == 0:
            raise DataError(f"Program studi '{name}' not found.")
        return OperationResult(affected=cursor.rowcount, message=f"Program studi '{name}' deleted.")

    # ─── Mata Kuliah ───────────────────────────────────────────

    def _add_mata_kuliah(self, args: dict[str, Any]) -> OperationResult:
        items = _as_list(args.get("matkul_data"))
        if not items:
            raise DataError("No mata kuliah data given.")
        for item in items:
            prodi_id = self._prodi_id(item["nama_prodi"])
            self._conn.execute(
                """INSERT INTO mata_kuliah (prodi_id, name, kode_mk, semester, created_at)
                   VALUES (?, ?, ?, ?, ?)""",
                (prodi_id, item["name"], item.get("kode_mk"), item["semester"], _now()),
            )
        return OperationResult(affected=len(items), message=f"{len(items)} mata kuliah added.")

    def _show_mata_kuliah(self, args: dict[str, Any]) -> OperationResult:
        query = """SELECT m.name, m.kode_mk, m.semester, p.name AS prodi
                   FROM mata_kuliah m JOIN program_studi p ON p.id = m.prodi_id"""
        clauses: list[str] = []
        params: list[Any] = []
        if args.get("nama_prodi"):
            clauses.append("p.name LIKE ?")
            params.append(f"%{args['nama_prodi']}%")
        if args.get("semester"):
            clauses.append("m.semester = ?")
            params.append(args["semester"])
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        rows = self._conn.execute(query + " ORDER BY m.semester, m.id", params).fetchall()
        return OperationResult(
            rows=[
                {"Nama MK": row["name"], "Kode": row["kode_mk"], "SMT": row["semester"], "Prodi": row["prodi"]}
                for row in rows
            ]
        )

    def _update_mata_kuliah(self, args: dict[str, Any]) -> OperationResult:
        current = args["current_kode_mk"]
        new_data = dict(args.get("new_data") or {})
        changes = {key: new_data[key] for key in ("name", "kode_mk", "semester") if key in new_data}
        if new_data.get("nama_prodi"):
            changes["prodi_id"] = self._prodi_id(new_data["nama_prodi"])
        if self._update("mata_kuliah", changes, "kode_mk", current) == 0:
            raise DataError(f"Mata kuliah with code '{current}' not found.")
        return OperationResult(affected=1, message=f"Mata kuliah with code '{current}' updated.")

    def _delete_mata_kuliah(self, args: dict[str, Any]) -> OperationResult:
        kode_mk = args["kode_mk"]
        cursor = self._conn.execute("DELETE FROM mata_kuliah WHERE kode_mk = ?", (kode_mk,))
        if cursor.rowcount == 0:
            raise DataError(f"Mata kuliah with code '{kode_mk}' not found.")
        return OperationResult(affected=cursor.rowcount, message=f"Mata kuliah with code '{kode_mk}' deleted.")

    # ─── Modul Ajar ────────────────────────────────────────────

    def _add_modul_ajar(self, args: dict[str, Any]) -> OperationResult:
        data = args["modul_data"]
        mata_kuliah_id = self._mata_kuliah_id(data["kode_mk"])
        dosen_id = self._dosen_id(data["email_dosen"])
        self._conn.execute(
            """INSERT INTO modul_ajar (id, mata_kuliah_id, dosen_id, title, file_url, angkatan, created_at)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            (uuid.uuid4().hex, mata_kuliah_id, dosen_id, data["title"], data["file_url"], data.get("angkatan"), _now()),
        )
        return OperationResult(affected=1, message=f"Modul ajar '{data['title']}' added.")

    def _show_modul_ajar(self, args: dict[str, Any]) -> OperationResult:
        query = """SELECT a.id, a.title, a.angkatan, m.name AS mata_kuliah, u.full_name AS dosen
                   FROM modul_ajar a
                   JOIN mata_kuliah m ON m.id = a.mata_kuliah_id
                   JOIN profiles u ON u.id = a.dosen_id"""
        clauses: list[str] = []
        params: list[Any] = []
        if args.get("kode_mk"):
            clauses.append("m.kode_mk = ?")
            params.append(args["kode_mk"])
        if args.get("email_dosen"):
            clauses.append("u.email = ?")
            params.append(args["email_dosen"])
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        rows = self._conn.execute(query + " ORDER BY a.created_at", params).fetchall()
        return OperationResult(
            rows=[
                {
                    "ID": row["id"],
                    "Judul": row["title"],
                    "Mata Kuliah": row["mata_kuliah"],
                    "Dosen": row["dosen"],
                    "Angkatan": row["angkatan"],
                }
                for row in rows
            ]
        )

    def _update_modul_ajar(self, args: dict[str, Any]) -> OperationResult:
        current = args["current_id"]
        new_data = args.get("new_data") or {}
        changes = {key: new_data[key] for key in ("title", "file_url", "angkatan") if key in new_data}
        if self._update("modul_ajar", changes, "id", current) == 0:
            raise DataError(f"Modul ajar with ID '{current}' not found.")
        return OperationResult(affected=1, message="Modul ajar updated.")

    def _delete_modul_ajar(self, args: dict[str, Any]) -> OperationResult:
        cursor = self._conn.execute("DELETE FROM modul_ajar WHERE id = ?", (args["id"],))
        if cursor.rowcount == 0:
            raise DataError(f"Modul ajar with ID '{args['id']}' not found.")
        return OperationResult(affected=cursor.rowcount, message="Modul ajar deleted.")

    # ─── Users ─────────────────────────────────────────────────

    def _add_user(self, args: dict[str, Any]) -> OperationResult:
        role = args["role"]
        prodi_id = self._prodi_id(args["nama_program_studi"])
        if role == "mahasiswa" and (not args.get("nim_or_nidn") or not args.get("angkatan")):
            raise DataError("NIM and angkatan are required for mahasiswa.")

        profile_id = uuid.uuid4().hex
        self._conn.execute(
            """INSERT INTO profiles (id, email, full_name, phone_number, role, created_at)
               VALUES (?, ?, ?, ?, ?, ?)""",
            (profile_id, args["email"], args["full_name"], args.get("phone_number"), role, _now()),
        )
        if role == "mahasiswa":
            self._conn.execute(
                "INSERT INTO mahasiswa_details (profile_id, nim, prodi_id, angkatan) VALUES (?, ?, ?, ?)",
                (profile_id, args["nim_or_nidn"], prodi_id, args["angkatan"]),
            )
        elif role == "dosen":
            self._conn.execute(
                "INSERT INTO dosen_details (profile_id, nidn, prodi_id) VALUES (?, ?, ?)",
                (profile_id, args.get("nim_or_nidn"), prodi_id),
            )
        return OperationResult(affected=1, message=f"User {args['full_name']} added.")

    def _show_users(self, args: dict[str, Any]) -> OperationResult:
        role = args.get("role")
        rows: list[dict[str, Any]] = []
        if role in (None, "dosen"):
            for row in self._conn.execute(
                """SELECT u.full_name, u.email, d.nidn
                   FROM profiles u LEFT JOIN dosen_details d ON d.profile_id = u.id
                   WHERE u.role = 'dosen' ORDER BY u.full_name"""
            ).fetchall():
                rows.append({"Nama": row["full_name"], "Email": row["email"], "NIDN": row["nidn"] or "-", "Role": "Dosen"})
        if role in (None, "mahasiswa"):
            for row in self._conn.execute(
                """SELECT u.full_name, u.email, m.nim, m.angkatan
                   FROM profiles u LEFT JOIN mahasiswa_details m ON m.profile_id = u.id
                   WHERE u.role = 'mahasiswa' ORDER BY u.full_name"""
            ).fetchall():
                rows.append(
                    {
                        "Nama": row["full_name"],
                        "Email": row["email"],
                        "NIM": row["nim"] or "-",
                        "Angkatan": row["angkatan"] or "-",
                        "Role": "Mahasiswa",
                    }
                )
        return OperationResult(rows=rows)

    def _delete_user_by_nim(self, args: dict[str, Any]) -> OperationResult:
        nim = args["nim"]
        row = self._conn.execute("SELECT profile_id FROM mahasiswa_details WHERE nim = ?", (nim,)).fetchone()
        if row is None:
            raise DataError(f"Mahasiswa with NIM '{nim}' not found.")
        self._conn.execute("DELETE FROM profiles WHERE id = ?", (row["profile_id"],))
        return OperationResult(affected=1, message=f"Mahasiswa with NIM '{nim}' deleted.")

    def _delete_dosen_by_nidn(self, args: dict[str, Any]) -> OperationResult:
        nidn = args["nidn"]
        row = self._conn.execute("SELECT profile_id FROM dosen_details WHERE nidn = ?", (nidn,)).fetchone()
        if row is None:
            raise DataError(f"Dosen with NIDN '{nidn}' not found.")
        self._conn.execute("DELETE FROM profiles WHERE id = ?", (row["profile_id"],))
        return OperationResult(affected=1, message=f"Dosen with NIDN '{nidn}' deleted.")

    # ─── Dosen <-> Mata Kuliah ─────────────────────────────────

    def _assign_dosen(self, args: dict[str, Any]) -> OperationResult:
        email, kode_mk = args["email_dosen"], args["kode_mk"]
        dosen_id = self._dosen_id(email)
        mata_kuliah_id = self._mata_kuliah_id(kode_mk)
        self._conn.execute(
            "INSERT INTO dosen_mata_kuliah (dosen_profile_id, mata_kuliah_id, created_at) VALUES (?, ?, ?)",
            (dosen_id, mata_kuliah_id, _now()),
        )
        return OperationResult(affected=1, message=f"Dosen '{email}' assigned to mata kuliah '{kode_mk}'.")

    def _show_dosen_mata_kuliah(self, args: dict[str, Any]) -> OperationResult:
        query = """SELECT u.full_name, u.email, m.name, m.kode_mk
                   FROM dosen_mata_kuliah dm
                   JOIN profiles u ON u.id = dm.dosen_profile_id
                   JOIN mata_kuliah m ON m.id = dm.mata_kuliah_id"""
        clauses: list[str] = []
        params: list[Any] = []
        if args.get("email_dosen"):
            clauses.append("u.email = ?")
            params.append(args["email_dosen"])
        if args.get("kode_mk"):
            clauses.append("m.kode_mk = ?")
            params.append(args["kode_mk"])
        if clauses:
            query += " WHERE " + " AND ".join(clauses)
        rows = self._conn.execute(query + " ORDER BY u.full_name, m.kode_mk", params).fetchall()
        return OperationResult(
            rows=[
                {
                    "Nama Dosen": row["full_name"],
                    "Email Dosen": row["email"],
                    "Mata Kuliah": row["name"],
                    "Kode MK": row["kode_mk"],
                }
                for row in rows
            ]
        )

    def _unassign_dosen(self, args: dict[str, Any]) -> OperationResult:
        email, kode_mk = args["email_dosen"], args["kode_mk"]
        dosen_id = self._dosen_id(email)
        mata_kuliah_id = self._mata_kuliah_id(kode_mk)
        cursor = self._conn.execute(
            "DELETE FROM dosen_mata_kuliah WHERE dosen_profile_id = ? AND mata_kuliah_id = ?",
            (dosen_id, mata_kuliah_id),
        )
        if cursor.rowcount == 0:
            raise DataError(f"Dosen '{email}' is not assigned to mata kuliah '{kode_mk}'.")
        return OperationResult(
            affected=cursor.rowcount,
            message=f"Dosen '{email}' unassigned from mata kuliah '{kode_mk}'.",
        )


def _integrity_message(error: sqlite3.IntegrityError) -> str:
    text = str(error)
    if "UNIQUE" in text:
        return f"Duplicate value: {text.split(':', 1)[-1].strip()} already exists."
    if "FOREIGN KEY" in text:
        return "Operation violates a reference: related records still exist or are missing."
    if "CHECK" in text:
        return f"Invalid value: {text}"
    return f"Constraint violation: {text}"


def _normalize_user_row(row: dict[str, Any]) -> dict[str, Any]:
    """Clean one spreadsheet/CSV row into addUser arguments."""
    user: dict[str, Any] = {}
    for column in USER_IMPORT_COLUMNS:
        value = row.get(column)
        if isinstance(value, str):
            value = value.strip() or None
        user[column] = value

    for column in ("email", "full_name", "role", "nama_program_studi"):
        if not user.get(column):
            raise DataError(f"Column '{column}' is required.")
    user["role"] = str(user["role"]).lower()
    if user["role"] not in ("mahasiswa", "dosen"):
        raise DataError(f"Role must be 'mahasiswa' or 'dosen', got '{user['role']}'.")

    if user.get("angkatan") is not None:
        try:
            user["angkatan"] = int(float(user["angkatan"]))
        except (TypeError, ValueError) as e:
            raise DataError(f"Angkatan must be a year, got '{user['angkatan']}'.") from e
    if user.get("nim_or_nidn") is not None:
        user["nim_or_nidn"] = str(user["nim_or_nidn"])
    return user

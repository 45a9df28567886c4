"""
Default action catalog for the academic records assistant.

Entities: jurusan (department), program studi (study program), mata kuliah
(course), modul ajar (teaching material), users (mahasiswa / dosen) and
lecturer-course assignments.

Every add/update/delete/assign/unassign action is mutating and therefore
passes through the confirmation gate.
"""

from __future__ import annotations

from registry.action_registry import ActionRegistry
from shared.models import ActionSpec, ArgumentSpec

USER_ROLES = ["mahasiswa", "dosen"]


def _str(required: bool = False, description: str = "", enum: list[str] | None = None) -> ArgumentSpec:
    return ArgumentSpec(type="string", required=required, description=description, enum=enum)


def _int(required: bool = False, description: str = "") -> ArgumentSpec:
    return ArgumentSpec(type="integer", required=required, description=description)


def _obj(properties: dict[str, ArgumentSpec], required: bool = False, description: str = "") -> ArgumentSpec:
    return ArgumentSpec(type="object", required=required, description=description, properties=properties)


def _list_of(item: ArgumentSpec, required: bool = False, description: str = "") -> ArgumentSpec:
    return ArgumentSpec(type="array", required=required, description=description, items=item)


DEFAULT_ACTIONS: tuple[ActionSpec, ...] = (
    # ─── Meta ──────────────────────────────────────────────────
    ActionSpec(
        name="getDatabaseSchema",
        description="Show information about every table in the database.",
        entity="Database Schema",
        operation="meta",
    ),
    ActionSpec(
        name="checkTableCounts",
        description="Count the rows of every table. Use it to answer 'is there any data ...?'.",
        entity="Table Counts",
        operation="meta",
    ),
    # ─── Jurusan ───────────────────────────────────────────────
    ActionSpec(
        name="addJurusan",
        description="Add one or more new departments (jurusan).",
        entity="Jurusan",
        operation="add",
        parameters={
            "jurusan_data": _list_of(
                _obj({"name": _str(required=True), "kode_jurusan": _str()}),
                required=True,
            ),
        },
        mutating=True,
        key_fields=["jurusan_data"],
    ),
    ActionSpec(
        name="showJurusan",
        description="List every department (jurusan).",
        entity="Jurusan",
        operation="show",
    ),
    ActionSpec(
        name="updateJurusan",
        description="Change a department, identified by its current name.",
        entity="Jurusan",
        operation="update",
        parameters={
            "current_name": _str(required=True),
            "new_data": _obj({"name": _str(), "kode_jurusan": _str()}, required=True),
        },
        mutating=True,
        key_fields=["current_name", "new_data"],
    ),
    ActionSpec(
        name="deleteJurusan",
        description="Delete a department by name.",
        entity="Jurusan",
        operation="delete",
        parameters={"name": _str(required=True)},
        mutating=True,
        key_fields=["name"],
    ),
    # ─── Program Studi ─────────────────────────────────────────
    ActionSpec(
        name="addProdi",
        description="Add one or more study programs (program studi) under existing departments.",
        entity="Program Studi",
        operation="add",
        parameters={
            "prodi_data": _list_of(
                _obj(
                    {
                        "nama_jurusan": _str(required=True, description="Name of the parent department"),
                        "name": _str(required=True),
                        "jenjang": _str(required=True, description="Degree level, e.g. D3, D4, S1"),
                        "kode_prodi_internal": _str(),
                    }
                ),
                required=True,
            ),
        },
        mutating=True,
        key_fields=["prodi_data"],
    ),
    ActionSpec(
        name="showProdi",
        description="List study programs, optionally filtered by department name.",
        entity="Program Studi",
        operation="show",
        parameters={"nama_jurusan": _str()},
    ),
    ActionSpec(
        name="updateProdi",
        description="Change a study program, identified by its current name.",
        entity="Program Studi",
        operation="update",
        parameters={
            "current_name": _str(required=True),
            "new_data": _obj(
                {
                    "name": _str(),
                    "jenjang": _str(),
                    "nama_jurusan": _str(),
                    "kode_prodi_internal": _str(),
                },
                required=True,
            ),
        },
        mutating=True,
        key_fields=["current_name", "new_data"],
    ),
    ActionSpec(
        name="deleteProdi",
        description="Delete a study program by name.",
        entity="Program Studi",
        operation="delete",
        parameters={"name": _str(required=True)},
        mutating=True,
        key_fields=["name"],
    ),
    # ─── Mata Kuliah ───────────────────────────────────────────
    ActionSpec(
        name="addMataKuliah",
        description="Add one or more courses (mata kuliah) to existing study programs.",
        entity="Mata Kuliah",
        operation="add",
        parameters={
            "matkul_data": _list_of(
                _obj(
                    {
                        "nama_prodi": _str(required=True),
                        "name": _str(required=True),
                        "kode_mk": _str(),
                        "semester": _int(required=True),
                    }
                ),
                required=True,
            ),
        },
        mutating=True,
        key_fields=["matkul_data"],
    ),
    ActionSpec(
        name="showMataKuliah",
        description="List courses, optionally filtered by study program name and semester.",
        entity="Mata Kuliah",
        operation="show",
        parameters={"nama_prodi": _str(), "semester": _int()},
    ),
    ActionSpec(
        name="updateMataKuliah",
        description="Change a course, identified by its current course code.",
        entity="Mata Kuliah",
        operation="update",
        parameters={
            "current_kode_mk": _str(required=True),
            "new_data": _obj(
                {"name": _str(), "kode_mk": _str(), "semester": _int(), "nama_prodi": _str()},
                required=True,
            ),
        },
        mutating=True,
        key_fields=["current_kode_mk", "new_data"],
    ),
    ActionSpec(
        name="deleteMataKuliah",
        description="Delete a course by its course code.",
        entity="Mata Kuliah",
        operation="delete",
        parameters={"kode_mk": _str(required=True)},
        mutating=True,
        key_fields=["kode_mk"],
    ),
    # ─── Modul Ajar ────────────────────────────────────────────
    ActionSpec(
        name="addModulAjar",
        description="Add a teaching material (modul ajar) for a course, owned by a lecturer.",
        entity="Modul Ajar",
        operation="add",
        parameters={
            "modul_data": _obj(
                {
                    "kode_mk": _str(required=True),
                    "email_dosen": _str(required=True),
                    "title": _str(required=True),
                    "file_url": _str(required=True),
                    "angkatan": _int(required=True, description="Intake year"),
                },
                required=True,
            ),
        },
        mutating=True,
        key_fields=["modul_data"],
    ),
    ActionSpec(
        name="showModulAjar",
        description="List teaching materials, optionally filtered by course code or lecturer email.",
        entity="Modul Ajar",
        operation="show",
        parameters={"kode_mk": _str(), "email_dosen": _str()},
    ),
    ActionSpec(
        name="updateModulAjar",
        description="Change a teaching material, identified by its ID.",
        entity="Modul Ajar",
        operation="update",
        parameters={
            "current_id": _str(required=True),
            "new_data": _obj({"title": _str(), "file_url": _str(), "angkatan": _int()}, required=True),
        },
        mutating=True,
        key_fields=["current_id", "new_data"],
    ),
    ActionSpec(
        name="deleteModulAjar",
        description="Delete a teaching material by its ID.",
        entity="Modul Ajar",
        operation="delete",
        parameters={"id": _str(required=True)},
        mutating=True,
        key_fields=["id"],
    ),
    # ─── Users ─────────────────────────────────────────────────
    ActionSpec(
        name="addUser",
        description="Add a new user (mahasiswa or dosen). Students need a NIM and an intake year.",
        entity="User",
        operation="add",
        parameters={
            "email": _str(required=True),
            "full_name": _str(required=True),
            "role": _str(required=True, enum=USER_ROLES),
            "nama_program_studi": _str(required=True),
            "nim_or_nidn": _str(),
            "angkatan": _int(),
            "phone_number": _str(),
        },
        mutating=True,
        key_fields=["full_name", "email", "role"],
    ),
    ActionSpec(
        name="showUsers",
        description=(
            "List users. When the role is not specific, call it twice: "
            "once for 'mahasiswa' and once for 'dosen'."
        ),
        entity="Users",
        operation="show",
        parameters={"role": _str(enum=USER_ROLES)},
    ),
    ActionSpec(
        name="deleteUserByNim",
        description="Delete a student (mahasiswa) by NIM.",
        entity="Mahasiswa",
        operation="delete",
        parameters={"nim": _str(required=True)},
        mutating=True,
        key_fields=["nim"],
    ),
    ActionSpec(
        name="deleteDosenByNidn",
        description="Delete a lecturer (dosen) by NIDN.",
        entity="Dosen",
        operation="delete",
        parameters={"nidn": _str(required=True)},
        mutating=True,
        key_fields=["nidn"],
    ),
    # ─── Dosen <-> Mata Kuliah ─────────────────────────────────
    ActionSpec(
        name="assignDosenToMataKuliah",
        description="Assign a lecturer (by email) to a course (by course code).",
        entity="Dosen Mata Kuliah",
        operation="assign",
        parameters={"email_dosen": _str(required=True), "kode_mk": _str(required=True)},
        mutating=True,
        key_fields=["email_dosen", "kode_mk"],
    ),
    ActionSpec(
        name="showDosenMataKuliah",
        description="List lecturer-course assignments, optionally filtered by lecturer email or course code.",
        entity="Dosen Mata Kuliah",
        operation="show",
        parameters={"email_dosen": _str(), "kode_mk": _str()},
    ),
    ActionSpec(
        name="unassignDosenFromMataKuliah",
        description="Remove a lecturer's assignment from a course.",
        entity="Dosen Mata Kuliah",
        operation="unassign",
        parameters={"email_dosen": _str(required=True), "kode_mk": _str(required=True)},
        mutating=True,
        key_fields=["email_dosen", "kode_mk"],
    ),
    ActionSpec(
        name="getAddUserTemplate",
        description="Return the template (example rows) for bulk user import.",
        entity="User Import Template",
        operation="meta",
    ),
)


def build_default_registry() -> ActionRegistry:
    """Build the shared, read-only registry for the academic catalog."""
    return ActionRegistry(DEFAULT_ACTIONS)

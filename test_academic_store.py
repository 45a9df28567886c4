from __future__ import annotations

import pytest

from registry.catalog import build_default_registry
from shared.errors import DataError
from storage.academic_store import USER_IMPORT_TEMPLATE, AcademicStore
from storage.sample_data import seed_sample_data


@pytest.fixture
def store(tmp_path):
    academic = AcademicStore(db_path=str(tmp_path / "academic.db"))
    yield academic
    academic.close()


@pytest.fixture
def seeded(store):
    seed_sample_data(store)
    return store


def test_supported_actions_match_catalog(store):
    build_default_registry().verify_capability(store.supported_actions())


def test_add_and_show_jurusan_preserves_insert_order(store):
    result = store.perform_operation(
        "addJurusan",
        {"jurusan_data": [{"name": "Teknik Mesin", "kode_jurusan": "TM"}, {"name": "Akuntansi"}]},
    )
    assert result.affected == 2

    rows = store.perform_operation("showJurusan", {}).rows
    assert rows == [
        {"Nama Jurusan": "Teknik Mesin", "Kode": "TM"},
        {"Nama Jurusan": "Akuntansi", "Kode": "-"},
    ]


def test_duplicate_name_is_data_error_and_batch_rolls_back(store):
    store.perform_operation("addJurusan", {"jurusan_data": [{"name": "Teknik Mesin"}]})
    with pytest.raises(DataError):
        store.perform_operation(
            "addJurusan", {"jurusan_data": [{"name": "Akuntansi"}, {"name": "Teknik Mesin"}]}
        )
    names = [row["Nama Jurusan"] for row in store.perform_operation("showJurusan", {}).rows]
    assert names == ["Teknik Mesin"]


def test_delete_jurusan_with_programs_violates_foreign_key(seeded):
    with pytest.raises(DataError):
        seeded.perform_operation("deleteJurusan", {"name": "Teknik Elektro"})
    assert seeded.perform_operation("showProdi", {"nama_jurusan": "Elektro"}).rows


def test_delete_unknown_jurusan_is_not_found(store):
    with pytest.raises(DataError) as exc:
        store.perform_operation("deleteJurusan", {"name": "Informatics"})
    assert "Informatics" in str(exc.value)


def test_delete_empty_jurusan(seeded):
    result = seeded.perform_operation("deleteJurusan", {"name": "Administrasi Bisnis"})
    assert result.affected == 1
    assert "Administrasi Bisnis" in result.message


def test_add_prodi_requires_existing_jurusan(store):
    with pytest.raises(DataError) as exc:
        store.perform_operation(
            "addProdi", {"prodi_data": [{"nama_jurusan": "Nope", "name": "X", "jenjang": "D3"}]}
        )
    assert "Nope" in str(exc.value)


def test_show_mata_kuliah_filters(seeded):
    rows = seeded.perform_operation("showMataKuliah", {"nama_prodi": "informatika", "semester": 3}).rows
    assert rows == [{"Nama MK": "Basis Data", "Kode": "TI201", "SMT": 3, "Prodi": "Teknik Informatika"}]


def test_update_mata_kuliah_moves_program(seeded):
    seeded.perform_operation(
        "updateMataKuliah",
        {"current_kode_mk": "TL101", "new_data": {"nama_prodi": "Teknik Informatika", "semester": 2}},
    )
    rows = seeded.perform_operation("showMataKuliah", {"nama_prodi": "Teknik Informatika"}).rows
    assert {"Nama MK": "Rangkaian Listrik", "Kode": "TL101", "SMT": 2, "Prodi": "Teknik Informatika"} in rows


def test_update_unknown_and_empty_changes(seeded):
    with pytest.raises(DataError):
        seeded.perform_operation("updateJurusan", {"current_name": "Nope", "new_data": {"name": "X"}})
    with pytest.raises(DataError):
        seeded.perform_operation("updateJurusan", {"current_name": "Teknik Sipil", "new_data": {}})


def test_users_and_delete_by_nim_cascades(seeded):
    rows = seeded.perform_operation("showUsers", {"role": "mahasiswa"}).rows
    assert rows == [
        {
            "Nama": "Budi Sanjaya",
            "Email": "budi.sanjaya@student.polnep.ac.id",
            "NIM": "3202400001",
            "Angkatan": 2024,
            "Role": "Mahasiswa",
        }
    ]
    seeded.perform_operation("deleteUserByNim", {"nim": "3202400001"})
    assert seeded.perform_operation("showUsers", {"role": "mahasiswa"}).rows == []
    assert seeded.table_counts()["mahasiswa_details"] == 0


def test_show_users_without_role_lists_both(seeded):
    roles = [row["Role"] for row in seeded.perform_operation("showUsers", {}).rows]
    assert roles == ["Dosen", "Mahasiswa"]


def test_student_requires_nim_and_angkatan(seeded):
    with pytest.raises(DataError):
        seeded.perform_operation(
            "addUser",
            {
                "email": "x@student.polnep.ac.id",
                "full_name": "X",
                "role": "mahasiswa",
                "nama_program_studi": "Teknik Informatika",
            },
        )
    assert seeded.table_counts()["profiles"] == 2


def test_assign_and_unassign_dosen(seeded):
    rows = seeded.perform_operation("showDosenMataKuliah", {"email_dosen": "siti.aminah@polnep.ac.id"}).rows
    assert [row["Kode MK"] for row in rows] == ["TI201"]

    with pytest.raises(DataError):
        seeded.perform_operation(
            "assignDosenToMataKuliah", {"email_dosen": "siti.aminah@polnep.ac.id", "kode_mk": "TI201"}
        )

    seeded.perform_operation(
        "unassignDosenFromMataKuliah", {"email_dosen": "siti.aminah@polnep.ac.id", "kode_mk": "TI201"}
    )
    assert seeded.perform_operation("showDosenMataKuliah", {}).rows == []
    with pytest.raises(DataError):
        seeded.perform_operation(
            "unassignDosenFromMataKuliah", {"email_dosen": "siti.aminah@polnep.ac.id", "kode_mk": "TI201"}
        )


def test_modul_ajar_lifecycle(seeded):
    rows = seeded.perform_operation("showModulAjar", {"email_dosen": "siti.aminah@polnep.ac.id"}).rows
    assert len(rows) == 1
    modul_id = rows[0]["ID"]

    seeded.perform_operation("updateModulAjar", {"current_id": modul_id, "new_data": {"title": "Basis Data 1"}})
    assert seeded.perform_operation("showModulAjar", {"kode_mk": "TI201"}).rows[0]["Judul"] == "Basis Data 1"

    seeded.perform_operation("deleteModulAjar", {"id": modul_id})
    assert seeded.perform_operation("showModulAjar", {}).rows == []


def test_add_modul_ajar_requires_lecturer(seeded):
    with pytest.raises(DataError) as exc:
        seeded.perform_operation(
            "addModulAjar",
            {
                "modul_data": {
                    "kode_mk": "TI201",
                    "email_dosen": "budi.sanjaya@student.polnep.ac.id",
                    "title": "X",
                    "file_url": "https://x",
                    "angkatan": 2024,
                }
            },
        )
    assert "Dosen" in str(exc.value)


def test_meta_operations(seeded):
    counts = {row["table"]: row["count"] for row in seeded.perform_operation("checkTableCounts", {}).rows}
    assert counts["jurusan"] == 3
    assert counts["profiles"] == 2
    schema = seeded.perform_operation("getDatabaseSchema", {}).rows
    assert schema[0]["table"] == "profiles"
    template = seeded.perform_operation("getAddUserTemplate", {}).rows
    assert template == [dict(row) for row in USER_IMPORT_TEMPLATE]


def test_unsupported_operation(store):
    with pytest.raises(DataError):
        store.perform_operation("dropEverything", {})


def test_import_users_reports_row_errors(seeded):
    report = seeded.import_users(
        [
            {
                "email": "rina@student.polnep.ac.id",
                "full_name": "Rina",
                "role": "Mahasiswa",
                "nim_or_nidn": "3202400002",
                "nama_program_studi": "Teknik Informatika",
                "angkatan": "2024",
                "phone_number": "",
            },
            {
                "email": "budi.sanjaya@student.polnep.ac.id",
                "full_name": "Budi Again",
                "role": "mahasiswa",
                "nim_or_nidn": "3202400003",
                "nama_program_studi": "Teknik Informatika",
                "angkatan": "2024",
            },
            {"email": "nobody@x", "full_name": "Nobody", "role": "admin", "nama_program_studi": "Teknik Informatika"},
        ]
    )
    assert report.total_rows == 3
    assert report.success_count == 1
    assert len(report.errors) == 2
    assert report.errors[0].startswith("Failed for email budi.sanjaya@student.polnep.ac.id")
    assert seeded.table_counts()["mahasiswa_details"] == 2


def test_seed_reports_skipped_steps(store):
    store.perform_operation("addJurusan", {"jurusan_data": [{"name": "Teknik Sipil"}]})
    messages = seed_sample_data(store)
    assert messages[0].startswith("addJurusan: skipped")
    assert store.table_counts()["jurusan"] == 1
    assert store.table_counts()["program_studi"] == 0

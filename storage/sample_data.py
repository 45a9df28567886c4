"""
Sample academic records for local development and demos.
"""

import logging

from shared.errors import DataError
from storage.academic_store import AcademicStore

logger = logging.getLogger(__name__)

SAMPLE_OPERATIONS: tuple[tuple[str, dict], ...] = (
    (
        "addJurusan",
        {
            "jurusan_data": [
                {"name": "Teknik Elektro", "kode_jurusan": "TE"},
                {"name": "Teknik Sipil", "kode_jurusan": "TS"},
                {"name": "Administrasi Bisnis", "kode_jurusan": "AB"},
            ]
        },
    ),
    (
        "addProdi",
        {
            "prodi_data": [
                {"nama_jurusan": "Teknik Elektro", "name": "Teknik Informatika", "jenjang": "D3", "kode_prodi_internal": "TI"},
                {"nama_jurusan": "Teknik Elektro", "name": "Teknik Listrik", "jenjang": "D3", "kode_prodi_internal": "TL"},
                {"nama_jurusan": "Teknik Sipil", "name": "Konstruksi Gedung", "jenjang": "D4", "kode_prodi_internal": "KG"},
            ]
        },
    ),
    (
        "addMataKuliah",
        {
            "matkul_data": [
                {"nama_prodi": "Teknik Informatika", "name": "Algoritma dan Pemrograman", "kode_mk": "TI101", "semester": 1},
                {"nama_prodi": "Teknik Informatika", "name": "Basis Data", "kode_mk": "TI201", "semester": 3},
                {"nama_prodi": "Teknik Listrik", "name": "Rangkaian Listrik", "kode_mk": "TL101", "semester": 1},
            ]
        },
    ),
    (
        "addUser",
        {
            "email": "siti.aminah@polnep.ac.id",
            "full_name": "Dr. Siti Aminah",
            "role": "dosen",
            "nim_or_nidn": "0012345678",
            "nama_program_studi": "Teknik Informatika",
        },
    ),
    (
        "addUser",
        {
            "email": "budi.sanjaya@student.polnep.ac.id",
            "full_name": "Budi Sanjaya",
            "role": "mahasiswa",
            "nim_or_nidn": "3202400001",
            "angkatan": 2024,
            "nama_program_studi": "Teknik Informatika",
        },
    ),
    ("assignDosenToMataKuliah", {"email_dosen": "siti.aminah@polnep.ac.id", "kode_mk": "TI201"}),
    (
        "addModulAjar",
        {
            "modul_data": {
                "kode_mk": "TI201",
                "email_dosen": "siti.aminah@polnep.ac.id",
                "title": "Pengantar Basis Data",
                "file_url": "https://files.example.org/modul/ti201-pengantar.pdf",
                "angkatan": 2024,
            }
        },
    ),
)


def seed_sample_data(store: AcademicStore) -> list[str]:
    """Apply every sample operation; already-present records are skipped."""
    messages: list[str] = []
    for action_name, args in SAMPLE_OPERATIONS:
        try:
            result = store.perform_operation(action_name, args)
        except DataError as e:
            logger.info("Seed step %s skipped: %s", action_name, e)
            messages.append(f"{action_name}: skipped ({e})")
            continue
        messages.append(f"{action_name}: {result.message}")
    return messages

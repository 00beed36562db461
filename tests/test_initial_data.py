"""
Tests para el script de importación de datos.txt.
"""

import pytest
from sqlalchemy.orm import sessionmaker

from app import initial_data
from app.crud.parto import parto as parto_crud
from tests.utils import make_line, make_text


@pytest.fixture
def session_factory(db_session, monkeypatch):
    """Hace que import_file use la misma base en memoria que db_session."""
    factory = sessionmaker(autocommit=False, autoflush=False, bind=db_session.get_bind())
    monkeypatch.setattr(initial_data, "SessionLocal", factory)
    return factory


@pytest.fixture
def datos_file(tmp_path):
    path = tmp_path / "datos.txt"
    path.write_text(
        make_text(
            make_line(sequence_number="1", rut="12345678-9"),
            make_line(sequence_number="2", rut="12.345.678-9", fecha_parto="03/20/2024"),
            "linea corta",
        ),
        encoding="utf-8",
    )
    return path


class TestImportFile:
    """Tests para import_file."""

    def test_import_totals(self, session_factory, datos_file, db_session):
        totals = initial_data.import_file(str(datos_file))

        assert totals["parsed"] == 2
        assert totals["inserted"] == 2
        assert totals["existing"] == 0
        assert totals["skipped_lines"] == 1
        assert totals["unique_mothers"] == 1
        assert parto_crud.count(db_session) == 2

    def test_reimport_inserts_nothing(self, session_factory, datos_file, db_session):
        initial_data.import_file(str(datos_file))
        totals = initial_data.import_file(str(datos_file))

        assert totals["inserted"] == 0
        assert totals["existing"] == 2
        assert parto_crud.count(db_session) == 2

    def test_clear_replaces_registry(self, session_factory, datos_file, db_session):
        initial_data.import_file(str(datos_file))
        totals = initial_data.import_file(str(datos_file), clear=True)

        assert totals["inserted"] == 2
        assert parto_crud.count(db_session) == 2

    def test_missing_file(self, session_factory, tmp_path):
        with pytest.raises(ValueError):
            initial_data.import_file(str(tmp_path / "no_existe.txt"))

    def test_file_without_records(self, session_factory, tmp_path):
        path = tmp_path / "vacio.txt"
        path.write_text("1\t2\t3\n", encoding="utf-8")
        with pytest.raises(ValueError):
            initial_data.import_file(str(path))

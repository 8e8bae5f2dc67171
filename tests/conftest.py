"""
conftest.py
-----------
Shared pytest fixtures: a small SQLite copy of the publications schema and
an intake folder of PDFs.
"""
import pytest
from sqlalchemy import create_engine, text

from rdb2dc.config import ExportConfig

SCHEMA = [
    "create table pubs_main (pub_id integer primary key, title text, "
    "abstract text, year text, pub_file text)",
    "create table pubs_journal_new (pub_id integer, journal text, "
    "volume text, spage text, epage text, extent text)",
    "create table pubs_author (author_id integer primary key, fname text, "
    "lname text)",
    "create table pubs_main_auth_lnk (f_pub_id integer, f_author_id integer)",
    "create table pubs_category (category_id integer primary key, name text)",
    "create table pubs_main_cat_lnk (f_pub_id integer, f_category_id integer)",
    "create table pubs_tag (tag_id integer primary key, name text)",
    "create table pubs_main_tag_lnk (f_pub_id integer, f_tag_id integer)",
]


def insert(engine, table, **values):
    columns = ", ".join(values)
    params = ", ".join(":" + k for k in values)
    with engine.begin() as conn:
        conn.execute(
            text(f"insert into {table} ({columns}) values ({params})"),
            values)


@pytest.fixture
def db_url(tmp_path):
    """URL of an SQLite database with two publications:
    7 has a PDF and full metadata, 8 has no PDF file at all."""
    url = f"sqlite:///{tmp_path / 'pubs.sqlite'}"
    engine = create_engine(url)
    with engine.begin() as conn:
        for statement in SCHEMA:
            conn.execute(text(statement))
    insert(engine, "pubs_main", pub_id=7, title="A Study",
           abstract="Fish & <chips>", year="2020", pub_file="a.pdf")
    insert(engine, "pubs_main", pub_id=8, title="No PDF",
           abstract="", year="0", pub_file="missing.pdf")
    insert(engine, "pubs_author", author_id=1, fname="Jane", lname="Doe")
    insert(engine, "pubs_main_auth_lnk", f_pub_id=7, f_author_id=1)
    insert(engine, "pubs_journal_new", pub_id=7, journal="Journal of Tests",
           volume="12", spage="1", epage="0", extent="10 p.")
    insert(engine, "pubs_category", category_id=1, name="Biology")
    insert(engine, "pubs_main_cat_lnk", f_pub_id=7, f_category_id=1)
    insert(engine, "pubs_tag", tag_id=1, name="fish")
    insert(engine, "pubs_main_tag_lnk", f_pub_id=7, f_tag_id=1)
    engine.dispose()
    return url


@pytest.fixture
def pdf_dir(tmp_path):
    path = tmp_path / "pdfs"
    path.mkdir()
    (path / "a.pdf").write_bytes(b"%PDF-1.4 test")
    return path


@pytest.fixture
def import_dir(tmp_path):
    return tmp_path / "import"


@pytest.fixture
def config(db_url, pdf_dir, import_dir):
    return ExportConfig(
        database_url=db_url, test_mode=True, folder_digits=4,
        import_dir=str(import_dir), pdf_dir=str(pdf_dir))

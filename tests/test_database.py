"""
Database handle tests.

Covers:
- engine options per backend
- session_scope commit / rollback
- sync modes: create, force (drop + recreate), alter (add missing columns)
"""
import pytest
from sqlalchemy import inspect, text

from hotel_manage.database import Database
from hotel_manage.models.customer import Customer


@pytest.fixture
def memory_db(settings):
    db = Database(url="sqlite://", settings=settings)
    yield db
    db.close()


def _tables(db):
    return set(inspect(db.engine).get_table_names())


EXPECTED_TABLES = {"customers", "users", "AppRole", "AppPermission", "_userRole", "_rolePermission"}


class TestDatabase:

    def test_backend_detection(self, memory_db):
        assert memory_db.is_sqlite is True
        assert memory_db.is_postgres is False
        assert memory_db.ping() is True

    def test_postgres_url_from_settings_has_no_side_effects(self, settings):
        pg_settings = settings.model_copy(update={"DATABASE_URL": None})
        db = Database(settings=pg_settings)
        assert db.is_postgres is True
        assert db.url.database == pg_settings.POSTGRES_DB
        db.close()

    def test_create_all(self, memory_db):
        memory_db.create_all()
        assert EXPECTED_TABLES <= _tables(memory_db)

    def test_session_scope_commits(self, memory_db):
        memory_db.create_all()
        with memory_db.session_scope() as session:
            session.add(Customer(
                customer_name="Scope", customer_code="SC", customer_type_id=1,
                creation_user="t", last_update_process="t",
            ))
        with memory_db.session_scope() as session:
            assert session.query(Customer).count() == 1

    def test_session_scope_rolls_back(self, memory_db):
        memory_db.create_all()
        with pytest.raises(RuntimeError):
            with memory_db.session_scope() as session:
                session.add(Customer(
                    customer_name="Gone", customer_code="GN", customer_type_id=1,
                    creation_user="t", last_update_process="t",
                ))
                session.flush()
                raise RuntimeError("abort")
        with memory_db.session_scope() as session:
            assert session.query(Customer).count() == 0


class TestSync:

    def test_default_creates_missing_tables(self, memory_db):
        memory_db.sync()
        assert EXPECTED_TABLES <= _tables(memory_db)

    def test_force_drops_data(self, memory_db):
        memory_db.sync()
        with memory_db.session_scope() as session:
            session.add(Customer(
                customer_name="Old", customer_code="OLD", customer_type_id=1,
                creation_user="t", last_update_process="t",
            ))
        memory_db.sync(force=True)
        with memory_db.session_scope() as session:
            assert session.query(Customer).count() == 0

    def test_alter_adds_missing_columns(self, memory_db):
        with memory_db.engine.begin() as conn:
            conn.execute(text(
                "CREATE TABLE customers ("
                "customer_id INTEGER PRIMARY KEY, customer_name VARCHAR(250), "
                "customer_code VARCHAR(10), customer_type_id INTEGER, record_version INTEGER, "
                "creation_date DATETIME, creation_user VARCHAR(150), last_update_process VARCHAR(250))"
            ))
            conn.execute(text(
                "INSERT INTO customers (customer_id, customer_name, customer_code, customer_type_id, "
                "record_version, creation_user, last_update_process) "
                "VALUES (1, 'Kept', 'KEPT', 1, 1, 't', 't')"
            ))

        memory_db.sync(alter=True)

        columns = {c["name"] for c in inspect(memory_db.engine).get_columns("customers")}
        assert {"fiscal_number", "last_update_date", "last_update_user"} <= columns
        with memory_db.engine.connect() as conn:
            assert conn.execute(text("SELECT customer_name FROM customers")).scalar() == "Kept"
        assert EXPECTED_TABLES <= _tables(memory_db)

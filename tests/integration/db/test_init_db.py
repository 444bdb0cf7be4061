from __future__ import annotations

from sqlalchemy import create_engine, inspect

import roofline.database.db as db_module
import roofline.database.init_db as init_db_module


def test_migrations_build_the_local_store(tmp_path, monkeypatch):
    url = f"sqlite:///{tmp_path / 'roofline_test.db'}"
    previous_url = db_module.get_active_database_url()
    monkeypatch.setattr(init_db_module, "bootstrap", lambda: None)
    db_module.reset_engine(url)
    try:
        init_db_module.init_db()
    finally:
        db_module.reset_engine(previous_url)

    inspector = inspect(create_engine(url))
    assert {"reps", "pins", "deals", "deal_commissions", "alembic_version"} <= set(inspector.get_table_names())
    columns = {column["name"] for column in inspector.get_columns("deals")}
    assert {"adjuster_not_assigned", "date_type", "payment_requested"} <= columns

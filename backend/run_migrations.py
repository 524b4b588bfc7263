"""Simple migration runner applying the SQL files in migrations/ to DATABASE_URL."""
from pathlib import Path
import sys

BASE = Path(__file__).parent
if str(BASE) not in sys.path:
    sys.path.insert(0, str(BASE))

from userapi.database import engine  # noqa: E402

MIGRATIONS = sorted((BASE / "migrations").glob("*.sql"))


def _statements(sql: str):
    """Split a migration file into individual statements."""
    for stmt in sql.split(";"):
        if stmt.strip():
            yield stmt.strip()


def run(bind=None, migrations=None):
    """Execute SQL migration files against the configured database.

    The function applies every `migrations/*.sql` file in lexical
    order inside a single transaction. Statements are written to be
    idempotent so the runner can be invoked repeatedly.
    """
    bind = bind or engine
    migrations = MIGRATIONS if migrations is None else migrations
    print("Using database:", bind.url.render_as_string(hide_password=True))
    with bind.begin() as conn:
        for m in migrations:
            print("Applying:", m.name)
            for stmt in _statements(m.read_text(encoding="utf-8")):
                conn.exec_driver_sql(stmt)
    print("Migrations applied.")


if __name__ == '__main__':
    run()

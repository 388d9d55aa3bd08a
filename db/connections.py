from pathlib import Path
from typing import Dict, Optional
import aiosqlite


async def connect(
    db_path: str,
    pragmas: Optional[Dict[str, str]] = None,
    *,
    timeout: float = 5.0,
) -> aiosqlite.Connection:
    """Open an aiosqlite connection and apply sensible pragmas.

    - Sets `row_factory` to `aiosqlite.Row` for named access.
    - Disables implicit transactions; callers issue BEGIN IMMEDIATE themselves.
    - Applies any additional PRAGMA settings supplied in `pragmas`.

    Returns an open connection; caller is responsible for closing it.
    """
    conn = await aiosqlite.connect(db_path, timeout=timeout, isolation_level=None)
    conn.row_factory = aiosqlite.Row

    if pragmas:
        for k, v in pragmas.items():
            await conn.execute(f"PRAGMA {k} = {v}")

    return conn


def _split_statements(sql: str) -> list[str]:
    """Strip `--` comments and split a schema script on semicolons."""
    statements = []
    current = []
    for line in sql.split('\n'):
        if '--' in line:
            line = line[:line.index('--')]
        line = line.strip()
        if line:
            current.append(line)
            if line.endswith(';'):
                stmt = ' '.join(current).rstrip(';').strip()
                if stmt:
                    statements.append(stmt)
                current = []
    return statements


async def init_db(db_path: str, schema_path: Optional[str] = None) -> None:
    """Apply the SQL schema to a SQLite database file.

    If `schema_path` is not provided this function will look for `schema.sql`
    next to this module (i.e. `db/schema.sql`). The schema only uses
    IF NOT EXISTS / OR IGNORE statements, so this is safe on every start.
    """
    schema_file = (
        Path(schema_path) if schema_path else Path(__file__).parent / "schema.sql"
    )

    if not schema_file.exists():
        raise FileNotFoundError(f"Schema file not found: {schema_file}")

    db_file = Path(db_path)
    if db_file.parent and not db_file.parent.exists():
        db_file.parent.mkdir(parents=True, exist_ok=True)

    conn = await connect(db_path)
    try:
        await conn.execute("BEGIN IMMEDIATE")
        for statement in _split_statements(schema_file.read_text()):
            await conn.execute(statement)
        await conn.commit()
    finally:
        await conn.close()

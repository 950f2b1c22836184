"""
ODBC Helpers for Azure SQL

- Connection string normalization (ADO.NET keys used by the Azure portal to
  ODBC keys understood by pyodbc)
- Named ``@param`` placeholders to positional ``?`` binding
- Parameter coercion by runtime type
- Row materialization into dicts
- Pool creation through aioodbc
"""

import math
import re
from collections.abc import Mapping, Sequence
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

from invport.core.config.constants import DEFAULT_ODBC_DRIVER
from invport.core.config.settings import DatabaseSettings
from invport.core.exceptions import DatabaseConnectionError, QueryExecutionError
from invport.core.logging.logger import get_logger, redact_text

logger = get_logger(__name__)

# ADO.NET / mssql-style keys -> ODBC Driver for SQL Server keys
_KEY_ALIASES = {
    "data source": "Server",
    "server": "Server",
    "address": "Server",
    "addr": "Server",
    "network address": "Server",
    "initial catalog": "Database",
    "database": "Database",
    "user id": "UID",
    "user": "UID",
    "uid": "UID",
    "password": "PWD",
    "pwd": "PWD",
    "encrypt": "Encrypt",
    "trustservercertificate": "TrustServerCertificate",
    "trust server certificate": "TrustServerCertificate",
    "authentication": "Authentication",
    "driver": "Driver",
    "application name": "APP",
    "app": "APP",
}

# Keys the pool manages itself
_DROPPED_KEYS = {
    "connection timeout",
    "connect timeout",
    "pooling",
    "max pool size",
    "min pool size",
    "persist security info",
    "multipleactiveresultsets",
}

_BOOLEAN_KEYS = {"Encrypt", "TrustServerCertificate"}

_NAMED_PARAM = re.compile(r"(?<![@\w])@([A-Za-z_]\w*)")


def parse_connection_string(connection_string: str) -> list[tuple[str, str]]:
    """Split ``key=value;`` pairs, honouring ``{...}`` braces around values."""
    pairs: list[tuple[str, str]] = []
    i, n = 0, len(connection_string)
    while i < n:
        eq = connection_string.find("=", i)
        if eq == -1:
            break
        key = connection_string[i:eq].strip().strip(";").strip()
        j = eq + 1
        while j < n and connection_string[j] == " ":
            j += 1
        if j < n and connection_string[j] == "{":
            close = connection_string.find("}", j)
            if close == -1:
                close = n
            value = connection_string[j + 1:close]
            semi = connection_string.find(";", close)
            i = n if semi == -1 else semi + 1
        else:
            semi = connection_string.find(";", j)
            value = connection_string[j:] if semi == -1 else connection_string[j:semi]
            i = n if semi == -1 else semi + 1
        if key:
            pairs.append((key, value.strip()))
    return pairs


def _format_value(key: str, value: str) -> str:
    if key in _BOOLEAN_KEYS:
        lowered = value.lower()
        if lowered in ("true", "yes", "1", "mandatory"):
            value = "yes"
        elif lowered in ("false", "no", "0", "optional"):
            value = "no"
    if key == "Driver" or ";" in value or value.startswith("{"):
        return "{" + value.strip("{}") + "}"
    return value


def build_odbc_dsn(connection_string: str, driver: str = DEFAULT_ODBC_DRIVER) -> str:
    """
    Normalize a SQL Server connection string into an ODBC DSN.

    ``tcp:`` prefixes and ``Server=host,1433`` ports are kept as-is; the ODBC
    driver understands both. Encryption defaults to on.

    Example:
        >>> build_odbc_dsn("Server=tcp:db.example.net,1433;Initial Catalog=inv;"
        ...                "User ID=app;Password=s3cret;")
        'Driver={ODBC Driver 18 for SQL Server};Server=tcp:db.example.net,1433;Database=inv;UID=app;PWD=s3cret;Encrypt=yes'
    """
    normalized: dict[str, str] = {}
    for raw_key, value in parse_connection_string(connection_string):
        lowered = raw_key.lower()
        if lowered in _DROPPED_KEYS:
            continue
        key = _KEY_ALIASES.get(lowered, raw_key)
        normalized[key] = value

    if "Server" not in normalized:
        raise DatabaseConnectionError(
            "Connection string does not name a server",
            details={"keys": sorted(normalized)},
        )

    normalized.setdefault("Encrypt", "yes")
    driver_value = normalized.pop("Driver", driver)

    parts = [f"Driver={_format_value('Driver', driver_value)}"]
    parts.extend(f"{key}={_format_value(key, value)}" for key, value in normalized.items())
    return ";".join(parts)


def coerce_parameter(value: Any) -> Any:
    """
    Map a Python value to something pyodbc binds with the right SQL type.

    bool binds as BIT, int as INT/BIGINT, float as FLOAT, Decimal as DECIMAL,
    str as NVARCHAR, dates and times natively. Anything else binds as its
    string form.
    """
    if value is None or isinstance(value, (bool, int, float, Decimal, str, bytes)):
        return value
    if isinstance(value, (datetime, date, time)):
        return value
    return str(value)


def translate_named_parameters(
    sql: str, params: Mapping[str, Any] | None = None
) -> tuple[str, tuple[Any, ...]]:
    """
    Rewrite ``@name`` placeholders to ``?`` and return the positional values.

    ``@@`` system functions are left alone. A name used twice binds twice.

    Raises:
        QueryExecutionError: If a placeholder has no matching parameter
    """
    params = params or {}
    values: list[Any] = []

    def _replace(match: re.Match) -> str:
        name = match.group(1)
        if name not in params:
            raise QueryExecutionError(
                f"Missing value for SQL parameter @{name}", details={"parameter": name}
            )
        values.append(coerce_parameter(params[name]))
        return "?"

    translated = _NAMED_PARAM.sub(_replace, sql)
    return translated, tuple(values)


def _json_safe(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    return value


def rows_to_dicts(description: Sequence[Sequence[Any]] | None, rows: Sequence[Any]) -> list[dict[str, Any]]:
    """Materialize driver rows into dicts keyed by column name."""
    if not description:
        return []
    columns = [column[0] for column in description]
    return [
        {column: _json_safe(value) for column, value in zip(columns, row)}
        for row in rows
    ]


async def create_odbc_pool(connection_string: str, settings: DatabaseSettings):
    """
    Open an aioodbc pool against Azure SQL.

    STAGE-DB.0: Pool creation

    Raises:
        DatabaseConnectionError: On any driver error while logging in
    """
    # pyodbc loads the unixODBC runtime at import time
    import aioodbc
    import pyodbc

    dsn = build_odbc_dsn(connection_string, driver=settings.DB_ODBC_DRIVER)
    logger.info(
        "Opening SQL connection pool",
        stage="DB.0",
        dsn=redact_text(dsn),
        minsize=settings.DB_POOL_MIN_SIZE,
        maxsize=settings.DB_POOL_MAX_SIZE,
    )
    try:
        return await aioodbc.create_pool(
            dsn=dsn,
            minsize=settings.DB_POOL_MIN_SIZE,
            maxsize=settings.DB_POOL_MAX_SIZE,
            autocommit=True,
            timeout=math.ceil(settings.DB_CONNECT_TIMEOUT),
        )
    except pyodbc.Error as exc:
        raise DatabaseConnectionError.from_exception(
            exc, message=f"Failed to connect to SQL Server: {redact_text(str(exc))}"
        ) from exc

"""
Inventory Service

Vehicle CRUD, listings, VIN checks and dashboard totals over ``dbo.Units``.
Every operation validates its inputs first, throttles its outbound work, runs
through the `QueryExecutor`, and turns ``success=False`` results into typed
exceptions that the API layer renders.

STAGE-INV: Inventory operations
-------------------------------
INV.1: Paginated listing
INV.2: Filtered listing
INV.3: Single fetch
INV.4: Create (VIN uniqueness pre-check, then insert)
INV.5: Update / delete / status change
INV.6: VIN existence check
INV.7: Dashboard totals
"""

import asyncio
import math
import re
import time
from collections.abc import Mapping
from typing import Any

from invport.core.clock import utc_now_iso
from invport.core.config.constants import (
    DEFAULT_FILTERED_PAGE_LIMIT,
    DEFAULT_PAGE,
    DEFAULT_PAGE_LIMIT,
    DEFAULT_SORT_COLUMN,
    DEFAULT_VEHICLE_CONDITION,
    DEFAULT_VEHICLE_STATUS,
    DEFAULT_VEHICLE_TYPE_ID,
    MAX_PAGE_LIMIT,
    SORTABLE_COLUMNS,
    VEHICLE_COLUMNS,
    VEHICLE_STATUSES,
)
from invport.core.exceptions import (
    DatabaseError,
    DuplicateVinError,
    InvalidStatusError,
    InvalidVehicleIdError,
    ValidationError,
    VehicleNotFoundError,
)
from invport.core.logging.logger import get_logger, log_stage
from invport.core.resilience.rate_limiter import RATE_LIMITS, RateLimitConfig, RateLimiter
from invport.infrastructure.database.query_executor import QueryExecutor, QueryResult

logger = get_logger(__name__)

_VIN_FORMAT = re.compile(r"^[A-HJ-NPR-Z0-9]{17}$")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


# ============================================================================
# Helpers
# ============================================================================


def elapsed_ms(start: float) -> int:
    return int(round((time.perf_counter() - start) * 1000))


def format_duration(start: float) -> str:
    """Duration since ``start`` in the ``"<ms>ms"`` form used by API responses."""
    return f"{elapsed_ms(start)}ms"


def build_pagination(total: int, page: int, limit: int) -> dict[str, Any]:
    """
    Pagination block for a listing.

    An empty result has no pages, so both hasNext and hasPrev are False no
    matter which page was requested.
    """
    total_pages = math.ceil(total / limit) if total > 0 else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": total_pages,
        "hasNext": page < total_pages,
        "hasPrev": page > 1 and total_pages > 0,
    }


def parse_unit_id(raw_id: Any) -> int:
    """Parse a vehicle id path segment into a positive integer."""
    try:
        unit_id = int(str(raw_id).strip())
    except (TypeError, ValueError):
        raise InvalidVehicleIdError(raw_id) from None
    if unit_id < 1:
        raise InvalidVehicleIdError(raw_id)
    return unit_id


def parse_page_params(page: Any, limit: Any, default_limit: int) -> tuple[int, int]:
    """Coerce page/limit query values; absent values take the defaults."""
    parsed_page = _parse_positive(page, DEFAULT_PAGE, "page")
    parsed_limit = _parse_positive(limit, default_limit, "limit")
    if parsed_limit > MAX_PAGE_LIMIT:
        raise ValidationError(
            f"limit must be <= {MAX_PAGE_LIMIT}", details={"limit": parsed_limit}
        )
    return parsed_page, parsed_limit


def _parse_positive(value: Any, default: int, name: str) -> int:
    if value is None or value == "":
        return default
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be a positive integer", details={name: value}) from None
    if parsed < 1:
        raise ValidationError(f"{name} must be a positive integer", details={name: value})
    return parsed


def parse_year(value: Any) -> int | None:
    """Leading-integer parse for a model year; blank means unknown."""
    if value is None or value == "" or value is False:
        return None
    if isinstance(value, bool):
        raise ValidationError("Year must be a number", details={"year": value})
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value)
    match = _LEADING_INT.match(str(value))
    if not match:
        raise ValidationError("Year must be a number", details={"year": value})
    return int(match.group(1))


def parse_price(value: Any) -> float | None:
    """Leading-number parse for a price; blank or zero means no price."""
    if value is None or value == "" or value == 0:
        return None
    if isinstance(value, bool):
        raise ValidationError("Price must be a number", details={"price": value})
    if isinstance(value, (int, float)):
        return float(value)
    match = _LEADING_FLOAT.match(str(value))
    if not match:
        raise ValidationError("Price must be a number", details={"price": value})
    return float(match.group(1))


def _text_or_none(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _int_or_none(value: Any, name: str) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{name} must be an integer", details={name: value}) from None


def normalize_vin(value: Any) -> str:
    """Trimmed, upper-cased VIN; empty string when absent."""
    if value is None:
        return ""
    return str(value).strip().upper()


# ============================================================================
# Service
# ============================================================================


class InventoryService:
    """
    Vehicle inventory operations.

    Args:
        executor: Query executor bound to the shared pool
        rate_limiter: Outbound throttle; None disables throttling
        rate_limits: Throttle presets by operation key
    """

    def __init__(
        self,
        executor: QueryExecutor,
        rate_limiter: RateLimiter | None = None,
        rate_limits: Mapping[str, RateLimitConfig] = RATE_LIMITS,
    ):
        self._executor = executor
        self._rate_limiter = rate_limiter
        self._rate_limits = rate_limits

    @property
    def executor(self) -> QueryExecutor:
        return self._executor

    async def _throttle(self, key: str) -> None:
        if self._rate_limiter is None:
            return
        await self._rate_limiter.throttle(key, self._rate_limits[key])

    def _failure(self, result: QueryResult, message: str, start: float | None = None) -> DatabaseError:
        """Wrap a failed result, exposing breaker diagnostics to the client."""
        error = DatabaseError(result.error or message, details={"operation": message})
        error.expose(circuitBreaker=self._executor.circuit_status())
        if start is not None:
            error.expose(duration=format_duration(start))
        return error

    # ------------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------------

    async def list_vehicles(self, page: Any = None, limit: Any = None) -> dict[str, Any]:
        """
        Newest-first page of vehicles with totals.

        STAGE-INV.1
        """
        start = time.perf_counter()
        page, limit = parse_page_params(page, limit, DEFAULT_PAGE_LIMIT)
        offset = (page - 1) * limit

        await self._throttle("INVENTORY")
        log_stage(logger, "INV.1", "Listing vehicles", page=page, limit=limit)

        count_result, data_result = await asyncio.gather(
            self._executor.execute_query("SELECT COUNT(*) AS total FROM dbo.Units"),
            self._executor.execute_query(
                f"SELECT {VEHICLE_COLUMNS} FROM dbo.Units "
                "ORDER BY UnitID DESC "
                "OFFSET @offset ROWS FETCH NEXT @limit ROWS ONLY",
                {"offset": offset, "limit": limit},
            ),
        )
        for result in (count_result, data_result):
            if not result.success:
                raise self._failure(result, "list vehicles", start)

        total = int((count_result.first or {}).get("total") or 0)
        pagination = build_pagination(total, page, limit)
        return {
            "success": True,
            "vehicles": data_result.data,
            "total": total,
            "page": page,
            "limit": limit,
            "totalPages": pagination["totalPages"],
            "hasNext": pagination["hasNext"],
            "hasPrev": pagination["hasPrev"],
            "duration": format_duration(start),
        }

    async def search_vehicles(
        self,
        search: str | None = None,
        status: str | None = None,
        sort_by: str | None = None,
        sort_order: str | None = None,
        page: Any = None,
        limit: Any = None,
    ) -> dict[str, Any]:
        """
        Filtered, sorted page of vehicles.

        STAGE-INV.2

        The sort column is checked against an allow-list before it is placed in
        the SQL text; search and status values are always bound parameters.
        """
        start = time.perf_counter()
        page, limit = parse_page_params(page, limit, DEFAULT_FILTERED_PAGE_LIMIT)

        conditions: list[str] = []
        params: dict[str, Any] = {}
        search = (search or "").strip()
        if search:
            conditions.append(
                "(VIN LIKE @search OR Make LIKE @search OR Model LIKE @search "
                "OR CAST([Year] AS NVARCHAR(10)) LIKE @search OR StockNo LIKE @search)"
            )
            params["search"] = f"%{search}%"
        status = (status or "").strip()
        if status and status.lower() != "all":
            conditions.append("Status = @status")
            params["status"] = status
        where_clause = f"WHERE {' AND '.join(conditions)} " if conditions else ""

        sort_column = sort_by if sort_by in SORTABLE_COLUMNS else DEFAULT_SORT_COLUMN
        direction = "ASC" if (sort_order or "").lower() == "asc" else "DESC"

        await self._throttle("INVENTORY")
        logger.info(
            "Searching vehicles",
            stage="INV.2",
            search=search or None,
            status=status or None,
            sort=f"{sort_column} {direction}",
            page=page,
            limit=limit,
        )

        count_result, data_result = await asyncio.gather(
            self._executor.execute_query(
                f"SELECT COUNT(*) AS total FROM dbo.Units {where_clause}", params
            ),
            self._executor.execute_query(
                f"SELECT {VEHICLE_COLUMNS} FROM dbo.Units {where_clause}"
                f"ORDER BY [{sort_column}] {direction} "
                "OFFSET @offset ROWS FETCH NEXT @limit ROWS ONLY",
                {**params, "offset": (page - 1) * limit, "limit": limit},
            ),
        )
        for result in (count_result, data_result):
            if not result.success:
                error = self._failure(result, "search vehicles", start)
                error.expose(
                    data={"vehicles": [], "pagination": build_pagination(0, 1, limit)}
                )
                raise error

        total = int((count_result.first or {}).get("total") or 0)
        return {
            "success": True,
            "data": {
                "vehicles": data_result.data,
                "pagination": build_pagination(total, page, limit),
            },
            "duration": format_duration(start),
        }

    # ------------------------------------------------------------------------
    # Single record
    # ------------------------------------------------------------------------

    async def get_vehicle(self, raw_id: Any) -> dict[str, Any]:
        """
        Fetch one vehicle by UnitID.

        STAGE-INV.3
        """
        unit_id = parse_unit_id(raw_id)
        await self._throttle("STATUS_CHECK")

        result = await self._executor.execute_query(
            f"SELECT {VEHICLE_COLUMNS} FROM dbo.Units WHERE UnitID = @unitId",
            {"unitId": unit_id},
        )
        if not result.success:
            raise self._failure(result, "fetch vehicle")
        if not result.data:
            raise VehicleNotFoundError(unit_id)
        return {"success": True, "data": result.data[0]}

    async def get_unit_vin(self, raw_id: Any) -> str:
        """
        Look up the VIN stored for a UnitID.

        Raises:
            InvalidVehicleIdError: Id is not a positive integer
            VehicleNotFoundError: No such unit, or the unit has no VIN
        """
        unit_id = parse_unit_id(raw_id)
        await self._throttle("STATUS_CHECK")

        result = await self._executor.execute_query(
            "SELECT VIN FROM dbo.Units WHERE UnitID = @unitId", {"unitId": unit_id}
        )
        if not result.success:
            raise self._failure(result, "fetch unit VIN")
        vin = (result.first or {}).get("VIN")
        if not vin:
            raise VehicleNotFoundError(unit_id)
        return vin

    async def add_vehicle(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        """
        Insert a vehicle after checking its VIN is not already stored.

        STAGE-INV.4

        Raises:
            ValidationError: VIN, year, make or model missing
            DuplicateVinError: VIN already present (case-insensitive)
        """
        vin = normalize_vin(payload.get("vin"))
        if not vin:
            raise ValidationError("VIN is required")
        if not payload.get("year") or not _text_or_none(payload.get("make")) or not _text_or_none(payload.get("model")):
            raise ValidationError("Year, Make, and Model are required")

        params = {
            "vin": vin,
            "year": parse_year(payload.get("year")),
            "make": _text_or_none(payload.get("make")),
            "model": _text_or_none(payload.get("model")),
            "price": parse_price(payload.get("price")),
            "stockNo": _text_or_none(payload.get("stockNo")),
            "condition": _text_or_none(payload.get("condition")) or DEFAULT_VEHICLE_CONDITION,
            "category": _text_or_none(payload.get("category")),
            "width": _text_or_none(payload.get("width")),
            "length": _text_or_none(payload.get("length")),
            "typeId": _int_or_none(payload.get("typeId"), "typeId") or DEFAULT_VEHICLE_TYPE_ID,
            "status": DEFAULT_VEHICLE_STATUS,
        }

        await self._throttle("WRITE")

        if await self._vin_exists(vin):
            logger.warning("Duplicate VIN rejected", stage="INV.4.1", vin=vin)
            raise DuplicateVinError(vin)

        result = await self._executor.execute_query(
            """
            INSERT INTO dbo.Units (
                VIN, [Year], Make, Model, Price, StockNo, Condition, Category,
                WidthCategory, SizeCategory, TypeID, Status, CreatedAt
            )
            VALUES (
                @vin, @year, @make, @model, @price, @stockNo, @condition, @category,
                @width, @length, @typeId, @status, GETDATE()
            );
            SELECT CAST(SCOPE_IDENTITY() AS INT) AS UnitID;
            """,
            params,
        )
        if not result.success:
            raise self._failure(result, "add vehicle")

        unit_id = (result.first or {}).get("UnitID")
        logger.info("Vehicle added", stage="INV.4.2", unit_id=unit_id, vin=vin)
        return {"success": True, "message": "Vehicle added successfully", "unitId": unit_id}

    async def update_vehicle(self, raw_id: Any, payload: Mapping[str, Any]) -> dict[str, Any]:
        """
        Replace a vehicle's editable fields.

        STAGE-INV.5
        """
        unit_id = parse_unit_id(raw_id)
        vin = normalize_vin(payload.get("vin"))
        if not vin:
            raise ValidationError("VIN is required and cannot be empty")

        params = {
            "unitId": unit_id,
            "vin": vin,
            "year": parse_year(payload.get("year")),
            "make": _text_or_none(payload.get("make")),
            "model": _text_or_none(payload.get("model")),
            "price": parse_price(payload.get("price")),
            "stockNo": _text_or_none(payload.get("stockNo")),
            "condition": _text_or_none(payload.get("condition")),
            "category": _text_or_none(payload.get("category")),
            "width": _text_or_none(payload.get("width")),
            "length": _text_or_none(payload.get("length")),
            "typeId": _int_or_none(payload.get("typeId"), "typeId"),
        }

        await self._throttle("WRITE")
        result = await self._executor.execute_query(
            """
            UPDATE dbo.Units SET
                VIN = @vin, [Year] = @year, Make = @make, Model = @model,
                Price = @price, StockNo = @stockNo, Condition = @condition,
                Category = @category, WidthCategory = @width, SizeCategory = @length,
                TypeID = @typeId, UpdatedAt = GETDATE()
            WHERE UnitID = @unitId
            """,
            params,
        )
        if not result.success:
            raise self._failure(result, "update vehicle")
        if result.row_count == 0:
            raise VehicleNotFoundError(unit_id)

        logger.info("Vehicle updated", stage="INV.5", unit_id=unit_id)
        return {"success": True, "message": "Vehicle updated successfully"}

    async def delete_vehicle(self, raw_id: Any) -> dict[str, Any]:
        """Delete a vehicle by UnitID."""
        unit_id = parse_unit_id(raw_id)

        await self._throttle("WRITE")
        result = await self._executor.execute_query(
            "DELETE FROM dbo.Units WHERE UnitID = @unitId", {"unitId": unit_id}
        )
        if not result.success:
            raise self._failure(result, "delete vehicle")
        if result.row_count == 0:
            raise VehicleNotFoundError(unit_id)

        logger.info("Vehicle deleted", stage="INV.5", unit_id=unit_id)
        return {"success": True, "message": "Vehicle deleted successfully"}

    async def update_status(self, raw_id: Any, status: Any) -> dict[str, Any]:
        """
        Set a vehicle's status to one of Available, Pending or Sold.

        The value is checked against the enumeration before any database work.
        """
        unit_id = parse_unit_id(raw_id)
        if status is None or (isinstance(status, str) and not status.strip()):
            raise ValidationError("Status is required")
        if status not in VEHICLE_STATUSES:
            raise InvalidStatusError(status, VEHICLE_STATUSES)

        await self._throttle("WRITE")
        result = await self._executor.execute_query(
            "UPDATE dbo.Units SET Status = @status, UpdatedAt = GETDATE() WHERE UnitID = @unitId",
            {"status": status, "unitId": unit_id},
        )
        if not result.success:
            raise self._failure(result, "update vehicle status")
        if result.row_count == 0:
            raise VehicleNotFoundError(unit_id)

        logger.info("Vehicle status updated", stage="INV.5", unit_id=unit_id, status=status)
        return {
            "success": True,
            "message": f"Vehicle status updated to {status}",
            "status": status,
        }

    # ------------------------------------------------------------------------
    # VIN check
    # ------------------------------------------------------------------------

    async def check_vin(self, raw_vin: Any) -> dict[str, Any]:
        """
        Report whether a VIN is already stored.

        STAGE-INV.6

        ``valid`` flags whether the VIN has the standard 17-character form; the
        lookup runs either way since older units carry non-standard VINs.
        """
        vin = normalize_vin(raw_vin)
        if not vin:
            raise ValidationError("VIN is required")

        await self._throttle("STATUS_CHECK")
        exists = await self._vin_exists(vin)
        return {
            "success": True,
            "vin": vin,
            "exists": exists,
            "valid": bool(_VIN_FORMAT.match(vin)),
        }

    async def _vin_exists(self, vin: str) -> bool:
        result = await self._executor.execute_scalar(
            "SELECT COUNT(*) AS count FROM dbo.Units WHERE UPPER(VIN) = @vin", {"vin": vin}
        )
        if not result.success:
            raise self._failure(result, "check VIN")
        return int(result.data[0] or 0) > 0

    # ------------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------------

    async def dashboard_stats(self) -> dict[str, Any]:
        """
        Unit count, inventory value and available count.

        STAGE-INV.7
        """
        start = time.perf_counter()
        await self._throttle("DASHBOARD")

        total, value, available = await asyncio.gather(
            self._executor.execute_scalar("SELECT COUNT(*) AS TotalItems FROM dbo.Units"),
            self._executor.execute_scalar(
                "SELECT ISNULL(SUM(Price), 0) AS TotalPrice FROM dbo.Units"
            ),
            self._executor.execute_scalar(
                "SELECT COUNT(CASE WHEN Status = 'Available' THEN 1 END) AS AvailableUnits "
                "FROM dbo.Units"
            ),
        )
        for result in (total, value, available):
            if not result.success:
                raise self._failure(result, "dashboard stats").expose(
                    responseTimeMs=elapsed_ms(start)
                )

        return {
            "success": True,
            "totalCount": int(total.data[0] or 0),
            "totalValue": float(value.data[0] or 0),
            "availableCount": int(available.data[0] or 0),
            "responseTimeMs": elapsed_ms(start),
            "timestamp": utc_now_iso(),
        }

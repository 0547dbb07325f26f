# GET /stats/*

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from datetime import date
from typing import Dict, List, Optional
from engagement_metrics.core.config import settings
from engagement_metrics.core.errors import DivisionByZero, InvalidArgument
from engagement_metrics.services.analytics import AnalyticsService
from engagement_metrics.schemas.analytics import DailyCount, MetricRow
import structlog

logger = structlog.get_logger()
router = APIRouter(prefix="/stats", tags=["analytics"])


def get_analytics_service(request: Request) -> AnalyticsService:
    """Dependency for the analytics service built once at startup"""
    return request.app.state.analytics_service


def _rows(values: Dict[str, float]) -> List[MetricRow]:
    return [MetricRow(account_id=account_id, metric_value=value) for account_id, value in values.items()]


def _run(metric: str, call, **context):
    """Run a metric call, mapping metric errors onto HTTP errors"""
    try:
        result = call()
        logger.info(f"{metric}_query_executed", **context)
        return result

    except InvalidArgument as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    except DivisionByZero as e:
        logger.warning(f"{metric}_division_by_zero", account_ids=e.account_ids, **context)
        raise HTTPException(
            status_code=422,
            detail={"message": str(e), "account_ids": e.account_ids}
        )

    except Exception as e:
        logger.error(f"{metric}_query_failed", error=str(e), **context)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to compute {metric}"
        )


@router.get("/daily", response_model=List[DailyCount])
async def get_daily(
        from_date: date = Query(..., alias="from", description="Start date (YYYY-MM-DD)"),
        to_date: date = Query(..., alias="to", description="End date (YYYY-MM-DD)"),
        service: AnalyticsService = Depends(get_analytics_service)
):
    """
    Get distinct users per account per day.

    - **from**: Start date (inclusive)
    - **to**: End date (inclusive)
    """
    return _run(
        "daily",
        lambda: service.get_daily(from_date, to_date),
        from_date=str(from_date),
        to_date=str(to_date)
    )


@router.get("/dau-average", response_model=List[MetricRow])
async def get_dau_average(
        from_date: date = Query(..., alias="from", description="Start date (YYYY-MM-DD)"),
        to_date: date = Query(..., alias="to", description="End date (YYYY-MM-DD)"),
        divisor: Optional[float] = Query(default=None, description="Days in the period, defaults to configured divisor"),
        service: AnalyticsService = Depends(get_analytics_service)
):
    """
    Get the average Daily Active Users per account.

    Daily distinct users are summed per account and divided by **divisor**,
    not by the number of days in the range.
    """
    divisor = settings.dau_divisor if divisor is None else divisor

    result = _run(
        "dau_average",
        lambda: service.get_dau_average(from_date, to_date, divisor),
        from_date=str(from_date),
        to_date=str(to_date),
        divisor=divisor
    )
    return _rows(result)


@router.get("/mau", response_model=List[MetricRow])
async def get_mau(
        from_date: date = Query(..., alias="from", description="Start date (YYYY-MM-DD)"),
        to_date: date = Query(..., alias="to", description="End date (YYYY-MM-DD)"),
        service: AnalyticsService = Depends(get_analytics_service)
):
    """
    Get Monthly Active Users (distinct users per account) for the date range.

    - **from**: Start date (inclusive)
    - **to**: End date (inclusive)
    """
    result = _run(
        "mau",
        lambda: service.get_mau(from_date, to_date),
        from_date=str(from_date),
        to_date=str(to_date)
    )
    return _rows(result)


@router.get("/growth-rate", response_model=List[MetricRow])
async def get_growth_rate(
        prior_from: date = Query(..., description="Prior window start (YYYY-MM-DD)"),
        prior_to: date = Query(..., description="Prior window end (YYYY-MM-DD)"),
        current_from: date = Query(..., description="Current window start (YYYY-MM-DD)"),
        current_to: date = Query(..., description="Current window end (YYYY-MM-DD)"),
        accounts: Optional[List[str]] = Query(default=None, description="Accounts to zero-fill in both windows"),
        service: AnalyticsService = Depends(get_analytics_service)
):
    """
    Get current over prior distinct users per account.

    Accounts active in only one window are omitted unless listed in
    **accounts**; a listed account with no prior users is reported as 422.
    """
    result = _run(
        "growth_rate",
        lambda: service.get_growth_rate(prior_from, prior_to, current_from, current_to, accounts),
        prior_from=str(prior_from),
        prior_to=str(prior_to),
        current_from=str(current_from),
        current_to=str(current_to)
    )
    return _rows(result)

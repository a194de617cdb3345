from fastapi import APIRouter, Depends, HTTPException, status
import logging

from greenwatt.core.deps import domain_http_error, get_household
from greenwatt.core.exceptions import GreenWattError
from greenwatt.models.insight import QuickAction, TopInsight
from greenwatt.schemas.dashboard import InsightListResponse, QuickActionResponse
from greenwatt.services.household import Household

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/", response_model=InsightListResponse)
async def list_insights(household: Household = Depends(get_household)):
    """Ranked insights from the latest evaluation"""
    generator = household.insights
    return InsightListResponse(
        insights=generator.insights,
        savings_potential=generator.savings_potential,
        optimization_score=generator.optimization_score()
    )


@router.get("/top", response_model=TopInsight)
async def get_top_insight(household: Household = Depends(get_household)):
    """Highest ranked insight, with an explicit status when there is none"""
    return household.insights.top_insight()


@router.post("/actions/{action}", response_model=QuickActionResponse)
async def execute_quick_action(action: QuickAction, household: Household = Depends(get_household)):
    """Run a quick action against the registry"""
    try:
        switched = await household.insights.execute_action(action)
        logger.info(f"Quick action {action.value} executed for user {household.user_id}")
        return QuickActionResponse(
            action=action,
            switched_off=switched,
            timestamp=household.registry.clock.now()
        )

    except GreenWattError as e:
        raise domain_http_error(e)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Quick action error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to execute quick action"
        )

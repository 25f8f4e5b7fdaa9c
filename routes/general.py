# routes/general.py
from fastapi import APIRouter, HTTPException, Request
from typing import Dict, Any

from utils.logging import logger
from utils.monitoring import collect_system_metrics

APP_NAME = "Arweave Day Stream"
APP_VERSION = "1.0.0"

router = APIRouter()

@router.get("/status")
async def status() -> Dict[str, Any]:
    """Application name, version and status"""
    return {
        "app": APP_NAME,
        "version": APP_VERSION,
        "status": "operational"
    }

@router.get("/health")
async def health_check(request: Request) -> Dict[str, Any]:
    """Health check endpoint for the API"""
    try:
        session_manager = request.app.state.session_manager
        return {
            "status": "healthy",
            "active_sessions": session_manager.active_count,
            "system": collect_system_metrics(),
            "version": APP_VERSION
        }
    except Exception as e:
        logger.error(f"Health check failed: {str(e)}")
        raise HTTPException(
            status_code=500,
            detail=f"Health check failed: {str(e)}"
        )

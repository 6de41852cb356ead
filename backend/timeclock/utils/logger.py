import logging
import os
from datetime import datetime
from timeclock.db import get_db
from typing import Dict, Any, Optional

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)

async def log_event(
    action: str,
    details: Optional[Dict[str, Any]] = None,
    user_id: Optional[str] = None,
    organization_id: Optional[str] = None
):
    """
    Log an event to both the application logger and the activity_logs collection
    """
    log_message = f"Action: {action}"
    if user_id:
        log_message += f" | User: {user_id}"
    if details:
        log_message += f" | Details: {details}"

    logger.info(log_message)

    try:
        db = get_db()
        await db["activity_logs"].insert_one({
            "action": action,
            "details": details or {},
            "userId": user_id,
            "organizationId": organization_id,
            "timestamp": datetime.utcnow(),
        })
    except Exception as e:
        # Audit persistence must never break the request that triggered it
        logger.error(f"Failed to log event: {e}")

def log_error(message: str, error: Exception, user_id: Optional[str] = None):
    """
    Log an error with context
    """
    error_message = f"Error: {message} | Exception: {str(error)}"
    if user_id:
        error_message += f" | User: {user_id}"

    logger.error(error_message, exc_info=error)

def log_warning(message: str, user_id: Optional[str] = None):
    warning_message = f"Warning: {message}"
    if user_id:
        warning_message += f" | User: {user_id}"

    logger.warning(warning_message)

def log_debug(message: str, details: Optional[Dict[str, Any]] = None):
    debug_message = f"Debug: {message}"
    if details:
        debug_message += f" | Details: {details}"

    logger.debug(debug_message)

# Event type constants for consistency
class EventTypes:
    CLOCKED_IN = "employee_clocked_in"
    CLOCKED_OUT = "employee_clocked_out"
    BREAK_STARTED = "employee_break_started"
    BREAK_ENDED = "employee_break_ended"
    CLOCK_REJECTED = "clock_action_rejected"

    LOCATION_CREATED = "location_created"
    LOCATION_UPDATED = "location_updated"
    LOCATION_DELETED = "location_deleted"
    LOCATION_VERIFIED = "location_verified"
    LOCATION_QR_GENERATED = "location_qr_generated"

    TIMESHEET_SUBMITTED = "timesheet_submitted"
    TIMESHEET_APPROVED = "timesheet_approved"
    TIMESHEET_REJECTED = "timesheet_rejected"

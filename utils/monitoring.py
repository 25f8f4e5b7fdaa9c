# utils/monitoring.py
import asyncio
from typing import Any, Callable, Dict, List, Tuple

import psutil

from utils.logging import logger

def collect_system_metrics() -> Dict[str, Any]:
    """Sample process-host resource usage without blocking the event loop."""
    memory = psutil.virtual_memory()
    disk = psutil.disk_usage('/')
    return {
        "cpu_percent": psutil.cpu_percent(interval=None),
        "memory_percent": memory.percent,
        "disk_percent": disk.percent,
    }

def evaluate_metrics(metrics: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """Return (is_critical, reasons) for a metrics sample."""
    reasons = []
    if metrics["cpu_percent"] > 85:
        reasons.append(f"CPU usage critical: {metrics['cpu_percent']}%")
    if metrics["memory_percent"] > 90:
        reasons.append(f"Memory usage critical: {metrics['memory_percent']}%")
    if metrics["disk_percent"] > 95:
        reasons.append(f"Disk usage critical: {metrics['disk_percent']}%")
    return bool(reasons), reasons

async def monitor_system_health(interval: int, max_unhealthy_count: int, active_sessions: Callable[[], int]):
    """Monitor system resources and log when the host stays under pressure"""
    unhealthy_count = 0
    while True:
        try:
            metrics = collect_system_metrics()
            metrics["active_sessions"] = active_sessions()
            is_critical, reasons = evaluate_metrics(metrics)

            if is_critical:
                logger.error(f"System resources critical: {metrics}\nReasons: {', '.join(reasons)}")
                unhealthy_count += 1

                if unhealthy_count >= max_unhealthy_count:
                    logger.critical(
                        f"System consistently unhealthy!\nMetrics: {metrics}\n"
                        f"Reasons: {', '.join(reasons)}"
                    )
                    # Reset counter to avoid spam
                    unhealthy_count = 0
            else:
                logger.debug(f"System healthy - Metrics: {metrics}")
                unhealthy_count = 0

            await asyncio.sleep(interval)

        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"Error in health monitoring: {str(e)}")
            await asyncio.sleep(60)  # Wait longer on error

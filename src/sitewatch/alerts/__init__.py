"""
Alert delivery for newly generated error records
"""

from sitewatch.alerts.sinks import (
    AlertSink,
    LogAlertSink,
    NullAlertSink,
    WebhookAlertSink,
    build_alert_sink,
    format_alert
)

__all__ = [
    'AlertSink',
    'LogAlertSink',
    'NullAlertSink',
    'WebhookAlertSink',
    'build_alert_sink',
    'format_alert'
]

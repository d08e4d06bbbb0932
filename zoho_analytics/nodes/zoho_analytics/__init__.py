"""Zoho Analytics nodes: table rows and report templates."""

from zoho_analytics.nodes.zoho_analytics.node import ZohoAnalyticsNode
from zoho_analytics.nodes.zoho_analytics.report_node import ZohoAnalyticsReportNode

__all__ = [
    "ZohoAnalyticsNode",
    "ZohoAnalyticsReportNode",
]

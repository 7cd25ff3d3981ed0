from .statistics import CountingConnection, log_statistics_report

__all__ = ("CountingConnection", "log_statistics_report")

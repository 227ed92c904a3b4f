"""
Component Engine - ingestion, templating and live preview of website components
"""

__version__ = "1.0.0"

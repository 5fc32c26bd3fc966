"""
Keyword Crawler Service

Crawls a single website for a keyword and reports matching pages to clients
polling a job id.
"""

__version__ = "1.0.0"
__description__ = "A keyword search crawler microservice for a single website"

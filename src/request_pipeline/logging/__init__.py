"""
Structured logging module.

Provides JSON file logging, a readable console format and per-request
context propagation.

Import directly from sub-modules:
    from request_pipeline.logging.setup import get_logger, setup_logging
    from request_pipeline.logging.utilities import log_with_context
    from request_pipeline.logging.context import set_log_context
"""

"""Response status validation."""

import logging
from typing import Optional

from request_pipeline.errors import StatusCodeError
from request_pipeline.logging.setup import get_logger
from request_pipeline.logging.utilities import log_with_context
from request_pipeline.wire import RequestOptions

logger = get_logger(__name__)

MIN_SUCCESS_STATUS = 200
MAX_STATUS_FOLLOWING_REDIRECTS = 299
MAX_STATUS_NOT_FOLLOWING_REDIRECTS = 399


class StatusPolicy:
    """
    Decides whether a status code is a success.

    When the transport follows redirects, only 2xx is accepted. When it
    doesn't, a 3xx is the final response and is accepted too. Absent options
    use the permissive (3xx accepted) range.
    """

    def max_status(self, options: Optional[RequestOptions]) -> int:
        follow_redirects = options.follow_redirects if options is not None else False
        if follow_redirects:
            return MAX_STATUS_FOLLOWING_REDIRECTS
        return MAX_STATUS_NOT_FOLLOWING_REDIRECTS

    def is_success(self, status_code: int, options: Optional[RequestOptions]) -> bool:
        return MIN_SUCCESS_STATUS <= status_code <= self.max_status(options)

    def validate(
        self,
        status_code: int,
        options: Optional[RequestOptions],
        url: Optional[str] = None,
    ) -> None:
        """
        Validate a response status code.

        Args:
            status_code: HTTP status of the response
            options: Options the request was sent with
            url: Response URL, for logging only

        Raises:
            StatusCodeError: If the status is outside the accepted range
        """
        if self.is_success(status_code, options):
            return

        log_with_context(
            logger,
            logging.ERROR,
            f"Invalid status code from {url or 'unknown'}: {status_code}",
            url=url,
            http_status=status_code,
        )
        raise StatusCodeError(status_code)

# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import traceback


def capture_error_message(e: BaseException) -> str:
    """Capture and format error message with full traceback.

    Works both inside and outside the except block that caught e.

    Args:
        e: The exception to capture.

    Returns:
        Formatted error string with exception type, message, and traceback.
    """
    error_string = f"{type(e).__name__}: {str(e)}\n"
    error_string += "".join(traceback.format_exception(type(e), e, e.__traceback__))
    return error_string

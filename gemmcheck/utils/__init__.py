# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from gemmcheck.utils.errors import capture_error_message
from gemmcheck.utils.logging import MultilineFormatter, setup_logging

__all__ = ["MultilineFormatter", "capture_error_message", "setup_logging"]

# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from gemmcheck.analysis.visualize import difference_map, plot_case_status, plot_mismatch

__all__ = ["difference_map", "plot_case_status", "plot_mismatch"]

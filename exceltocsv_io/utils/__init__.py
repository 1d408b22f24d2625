"""Utility helpers for exceltocsv_io."""

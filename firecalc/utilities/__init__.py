"""Shared utilities for firecalc.

Modules:
    - data_classes: Result and diagnostic dataclasses.
    - properties: Typed configuration properties.
    - file_io: Input store files, variable dumps and text results.
    - parquet_writer: Parquet output of result tables.
"""

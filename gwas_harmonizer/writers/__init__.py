"""Output file writers."""

from gwas_harmonizer.writers.log import print_summary, write_log_file
from gwas_harmonizer.writers.table import write_table_gz

__all__ = ["print_summary", "write_log_file", "write_table_gz"]

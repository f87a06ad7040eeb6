from .client import SupabaseClient, grant_to_row, row_to_grant

__all__ = ["SupabaseClient", "grant_to_row", "row_to_grant"]

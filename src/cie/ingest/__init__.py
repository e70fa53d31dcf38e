from .loader import load_records, record_from_dict

__all__ = ["load_records", "record_from_dict"]

from .search_bar import LabeledField, SearchBar

__all__ = ["LabeledField", "SearchBar"]

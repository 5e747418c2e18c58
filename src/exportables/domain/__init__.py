"""Domain layer: status model, managed records and the defaults rebuild core."""

"""Event ordering buffer, event processor and stream leechers."""
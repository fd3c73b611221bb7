"""
Per-user wishlist and comparison shortlists.

Both are bounded collections keyed by property id and persisted through a
pluggable key/value store. The comparison list holds at most four items.
"""

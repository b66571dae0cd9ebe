# Sparse byte-addressable memory.

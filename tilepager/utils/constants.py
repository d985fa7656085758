"""module to hold constants used throughout the project"""

# Squares per submap side.
SUBMAP_SIZE = 12

# Submaps per quad side; quads are generated and persisted 2x2 at a time.
QUAD_SIZE = 2

# Quads per segment side; segments select the on-disk directory.
SEGMENT_SIZE = 32

MAPS_DIRNAME = "maps"
CHUNK_SUFFIX = ".map"

# Member offsets of a quad, in the order records are written.
QUAD_OFFSETS = ((0, 0), (0, 1), (1, 0), (1, 1))

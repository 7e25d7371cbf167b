"""
mediatidy - Organize media files into date folders, remove duplicates and
prune empty directories.
"""

# Version History:
# v1.0.0 - organize, reorganize, synchronize, dedupe and prune actions
#          Name resolution from explicit rules, file names, EXIF and file dates
#          Hash, byte-by-byte and sampled content comparison
__version__ = "1.0.0"
myversion = f"v. {__version__} 2026-10-19"

"""
Pose Mirror
Capture two dancers, learn to map one body onto the other, and render the
live and predicted bodies as metaball skeletons.
"""

__version__ = "0.1.0"

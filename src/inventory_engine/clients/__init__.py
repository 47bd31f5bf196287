# Adapters between caller data formats and engine records
# Each adapter converts inputs into core.models records and outputs back out

from .frames import LoadedFrames, load_frames, records_from_frame, to_frame

__all__ = ["LoadedFrames", "load_frames", "records_from_frame", "to_frame"]

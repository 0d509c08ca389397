"""mediafactory — manifest-driven video rendering and publishing jobs.

Validate a scene timeline (images and trimmed video clips with motion,
color edits, captions, and crossfades), compile it into a render plan,
render it with ffmpeg, and track the asynchronous job that publishes
the result.
"""

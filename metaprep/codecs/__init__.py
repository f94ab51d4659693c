"""
Adapters over external codecs (Pillow for images, ffmpeg for video)
"""

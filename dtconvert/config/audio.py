"""
Configuration settings related to audio conversion.

This module defines default audio encoding parameters and the channel naming
used when a multichannel source is split into one file per channel.
"""

# ======================================================================================
# Audio Encoding Parameters
# ======================================================================================

# WAV (16 bit PCM) is the default because every playback server accepts it.
DEFAULT_AUDIO_ENCODER = "WAV_16"

# Sample rate proposed when the user enables a custom audio rate.
DEFAULT_AUDIO_RATE = 44100

DEFAULT_AUDIO_CHANNELS = "Stereo"


# ======================================================================================
# Channel Naming
# ======================================================================================

# Output channel labels for a split 5.1 stream, in ffmpeg's 5.1 layout order.
CHANNELS_5_1 = ("FL", "FR", "FC", "LFE", "SL", "SR")

# Mapping used when a stereo source is upmixed to 5.1.
STEREO_TO_5_1_MAP = "0.0-FL|1.0-FR|0.0-FC|0.0-BL|1.0-BR|1.0-LFE"

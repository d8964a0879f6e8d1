from enum import Enum


class QualityPolicy(str, Enum):
    HIGHEST = "highest"
    LOWEST = "lowest"
    HIGHEST_AUDIO = "highestaudio"
    LOWEST_AUDIO = "lowestaudio"
    HIGHEST_VIDEO = "highestvideo"
    LOWEST_VIDEO = "lowestvideo"


class FormatFilter(str, Enum):
    VIDEO = "video"
    VIDEO_ONLY = "videoonly"
    AUDIO = "audio"
    AUDIO_ONLY = "audioonly"
    VIDEO_AND_AUDIO = "videoandaudio"
    AUDIO_AND_VIDEO = "audioandvideo"


class PlayabilityStatus(str, Enum):
    OK = "OK"
    ERROR = "ERROR"
    UNPLAYABLE = "UNPLAYABLE"
    LOGIN_REQUIRED = "LOGIN_REQUIRED"
    LIVE_STREAM_OFFLINE = "LIVE_STREAM_OFFLINE"

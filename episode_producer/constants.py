"""All magic numbers and configuration constants."""

# Loudness targets (LUFS) and ceilings
DIALOGUE_LUFS = -16                 # integrated loudness target for the final episode
TRUE_PEAK_DB = -1.5                 # loudnorm true-peak ceiling
LOUDNESS_RANGE = 11                 # loudnorm LRA bound
LIMITER_CEILING = 0.97              # peak limiter on the summed mix

# Silence durations (seconds)
BEAT_SILENCE = 0.5                  # "cut to" cues
DRAMATIC_SILENCE = 1.0              # generic silence/pause/beat cues, scene transitions
SHOCK_SILENCE = 2.0                 # heavy/absolute silence cues
ENDING_SILENCE = 3.0                # final lock before the episode ends
MAX_SILENCE = 5.0                   # cap for explicit SILENCE cues
EXPLICIT_SILENCE_FALLBACK = 1.5     # unparseable SILENCE durations
NARRATOR_PAUSE = 0.8                # pause after each narrator line
DIALOGUE_PAUSE = 0.5                # pause after each character line

# Timeline
SPOT_PRE_ROLL = 0.15                # spot SFX start slightly before the clock
MOTIF_PRE_ROLL = 0.05
BED_MIN_SECONDS = 0.25
BED_MAX_EDGE_FADE = 0.6
MUSIC_TAIL_SECONDS = 0.5

# Bus gains (multipliers on MixOptions.sfx_volume)
SPOT_GAIN = 1.5
BED_GAIN = 0.4

# Sidechain ducking
SFX_DUCK_THRESHOLD_DB = -28
SFX_DUCK_RATIO = 3
MUSIC_DUCK_THRESHOLD_DB = -35
MUSIC_DUCK_RATIO = 10

# SFX prompts
SFX_PROMPT_MAX_CHARS = 220          # canonical prompt length
SFX_PROMPT_SYNTH_LIMIT = 180        # prompt length sent to the sound provider
SFX_CUE_MAX_CHARS = 160             # cue length kept by the script normalizer
BED_SYNTH_SECONDS = 10              # fixed duration requested for ambience beds
SFX_MAX_SECONDS = 22                # sound provider duration ceiling
MUSIC_SYNTH_SECONDS = 22

# Script
SPEAKER_MAX_CHARS = 30
DEFAULT_SPEAKER = "NARRATOR"
DEFAULT_EMOTION = "default"
WORDS_PER_MINUTE = 150              # display-only duration estimate

# Voices
DEFAULT_ACCENT = "indian"           # accent family for unassigned speakers
NARRATOR_VOICE = "pqHfZKP75CvOlQylNhV4"      # ElevenLabs narrator
EDGE_NARRATOR_VOICE = "en-US-RogerNeural"    # edge-tts narrator

# Synthesis
INTER_CALL_DELAY = 0.2              # seconds between provider calls
TTS_RETRY_COUNT = 3                 # max retries per edge-tts segment
TTS_RETRY_BASE_DELAY = 1.0          # seconds, doubled per retry
TTS_RATE = "-10%"                   # edge-tts speech rate
ELEVENLABS_API_URL = "https://api.elevenlabs.io/v1"
ELEVENLABS_TTS_MODEL = "eleven_multilingual_v2"
SFX_PROMPT_INFLUENCE = 0.3
HTTP_TIMEOUT = 120

# Output
OUTPUT_BITRATE = "192k"
SAMPLE_RATE = 44100
OUTPUT_CHANNELS = 2
MUSIC_LOOP_SECONDS = 30             # duration of the procedural music fallback
SCRATCH_PREFIX = "episode-mix-"
OUTPUT_DIR = "output"
VERSION = "0.1.0"

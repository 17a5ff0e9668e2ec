DESCRIPTOR_LENGTH = 128

# Blink (eye aspect ratio)
EAR_THRESHOLD = 0.21
EAR_WINDOW = 3  # samples averaged before thresholding
EAR_DEFAULT = 0.3  # neutral value for incomplete eye contours

# Smile
SMILE_THRESHOLD = 0.4
SMILE_FRAMES_REQUIRED = 5

# Head turn (nose tip displacement from the first tick)
HEAD_TURN_PIXELS = 10
HEAD_TURN_FRAMES_REQUIRED = 3

# Movement (bounding box top-left displacement between ticks)
MOVEMENT_PIXELS = 1
MOVEMENT_FRAMES_REQUIRED = 8

SIGNALS_REQUIRED = 2
LIVENESS_TIMEOUT = 30  # seconds
LIVENESS_HINT_AFTER = 20  # seconds

MATCH_THRESHOLD = 0.6  # euclidean distance, strictly below
NOTIFICATION_COOLDOWN = 10  # seconds between notifications per person
TICK_INTERVAL = 0.1  # seconds

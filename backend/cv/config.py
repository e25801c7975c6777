"""CV segmentation, selection and compositing configuration."""

# Processing resolution (square side in pixels)
TARGET_SIZE = 448

# Segmenter settings
SEGMENTER_MODEL = "yolov8n-seg.pt"
SEGMENTER_CONFIDENCE = 0.25
SEGMENTER_MASK_THRESHOLD = 0.5
SUBJECT_CLASSES = {0}  # COCO "person"

# Frame selection
# Boxes at or above this fraction of the mask width/height are treated as
# false positives (segmentation grabbed the whole frame).
MAX_MASK_COVERAGE = 0.7
# Minimum spacing between selected subjects, as a fraction of the
# half-average box size along the motion axis.
MIN_SPACING_FACTOR = 0.5

# Compositing
OVERLAY_ALPHA = 1.0
# Earliest overlay is drawn at this strength, ramping up to OVERLAY_ALPHA
OVERLAY_MIN_ALPHA = 0.6

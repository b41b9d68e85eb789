import os
import logging

# output
output_dir = '.'
map_name = 'map.png'
out_name = 'out.png'
summary_name = 'summary.png'

# input
max_dimension = None  # None keeps the decoded resolution

# other settings
log_level = os.environ.get('DEFOG_LOG_LEVEL', 'info')

logger = logging.getLogger('defog')
logger.setLevel(getattr(logging, log_level.upper(), logging.INFO))

if not logger.handlers:
    ch = logging.StreamHandler()
    ch.setLevel(logging.DEBUG)

    formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')
    ch.setFormatter(formatter)
    logger.addHandler(ch)

import os

# -------- App --------
DB_PATH = os.environ.get('DARTS_DB_PATH', 'tournaments.db')
SECRET_KEY = os.environ.get('SECRET_KEY', 'replace-this-secret')
ADMIN_USERNAME = os.environ.get('ADMIN_USERNAME', 'admin')
ADMIN_PASSWORD = os.environ.get('ADMIN_PASSWORD', 'password')
LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

# -------- Game rules --------
GAME_MODES = (201, 301, 501)
DEFAULT_GAME_MODE = 301
DEFAULT_GROUP_SETS_TO_WIN = 2    # first to 2 in the group stage
DEFAULT_KNOCKOUT_SETS_TO_WIN = 3
DEFAULT_GROUP_CHECKOUT = 'single'
DEFAULT_KNOCKOUT_CHECKOUT = 'double'

# Standings: W-L = 2-0
POINTS_PER_WIN = 2

# -------- Formats --------
MIN_GROUP_PLAYERS = 3
MIN_LEAGUE_PLAYERS = 2
# group format below this goes straight to the knockout bracket
GROUP_STAGE_MIN_PLAYERS = 9
GROUP_ADVANCING = 8

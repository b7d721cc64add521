import os

BACKEND_ROOT = os.path.dirname(os.path.abspath(__file__))


def _flag(name, default):
    return os.environ.get(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    # Level-pack catalog, loaded once at startup
    LEVELS_PATH = os.environ.get('LEVELS_PATH') or os.path.join(BACKEND_ROOT, 'levels.json')
    # Seconds a room survives after its Game Master disconnects
    GM_GRACE_PERIOD_SEC = float(os.environ.get('GM_GRACE_PERIOD_SEC', '5'))
    # Let disconnected players resume mid-game with their player id
    ALLOW_PLAYER_REJOIN = _flag('ALLOW_PLAYER_REJOIN', 'true')
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/ws')
    CORS_ORIGINS = [
        o.strip()
        for o in os.environ.get('CORS_ORIGINS', 'http://localhost:5173,http://127.0.0.1:5173').split(',')
        if o.strip()
    ]
    # Judge (Gemini generateContent API)
    GEMINI_API_KEY = os.environ.get('GEMINI_API_KEY')
    GEMINI_MODEL = os.environ.get('GEMINI_MODEL', 'gemini-2.5-pro')
    GEMINI_BASE_URL = os.environ.get('GEMINI_BASE_URL', 'https://generativelanguage.googleapis.com/v1beta')
    JUDGE_TIMEOUT_SEC = float(os.environ.get('JUDGE_TIMEOUT_SEC', '30'))
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')

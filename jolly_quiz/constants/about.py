"""Static metadata describing Jolly Quiz."""

APP_NAME = "Jolly Quiz"
APP_VERSION = "0.1"
APP_LICENSE = "MIT License"
APP_ABOUT_TEXT = (
    "Jolly Quiz runs themed multiplayer quiz sessions. Players join with a short game code, "
    "answer the questions at their own pace and meet on the leaderboard at the end."
)

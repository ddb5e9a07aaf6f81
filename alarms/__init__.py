"""Alarm subsystem for the Vlarm voice assistant."""

from .manager import AlarmManager
from .models import Alarm, AlarmStatus, categorize, classify
from .parser import TimedReminder, Unparsed, interpret_utterance
from .scheduler import AlarmScheduler

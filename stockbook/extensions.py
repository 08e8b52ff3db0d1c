from apscheduler.schedulers.background import BackgroundScheduler

from .store import RecordStore


store = RecordStore()
scheduler = BackgroundScheduler()

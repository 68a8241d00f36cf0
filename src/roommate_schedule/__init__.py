'''
Roommate Schedule Backend.

Week-aware schedule synchronization for the roommate scheduling app.
The FastAPI app lives in `roommate_schedule.main`.
'''
__version__ = "0.4.0"

#!/usr/bin/env python3

from decimal import Decimal
from reellib.core.errors import InvalidInput
from reellib.core.models import MediaKind, Settings, Timeline, TimelineEntry

#============================================

class TimelinePlanner():
	def __init__(self, settings: Settings):
		self.settings = settings

	#============================
	def plan(self, items: list) -> Timeline:
		self.settings.validate()
		if items is None or len(items) == 0:
			raise InvalidInput("at least one photo or video is required")
		entries = []
		offset = Decimal(0)
		for item in items:
			duration = self.on_screen_duration(item)
			entries.append(TimelineEntry(item, offset, duration))
			offset += duration
		return Timeline(tuple(entries), offset)

	#============================
	def on_screen_duration(self, item) -> Decimal:
		image_duration = self.settings.per_image_duration_seconds
		if item.kind == MediaKind.IMAGE:
			return image_duration
		if item.kind != MediaKind.VIDEO:
			raise InvalidInput(f"unsupported media kind {item.kind}", item_id=item.id)
		native = item.native_duration_seconds
		if native is None:
			raise InvalidInput("video clip is missing its duration", item_id=item.id)
		if not native.is_finite() or native <= 0:
			raise InvalidInput("video clip duration must be positive", item_id=item.id)
		if self.settings.apply_image_duration_to_videos:
			return min(native, image_duration)
		return native

#============================================

def plan_timeline(items: list, settings: Settings) -> Timeline:
	return TimelinePlanner(settings).plan(items)

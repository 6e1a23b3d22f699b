
#python wrapper for ffprobe and Pillow

import io
import json
import shutil
import subprocess
from decimal import Decimal
import PIL.Image
from reellib.core import utils

#===============================
def getMediaInfo(mediafile: str) -> dict:
	ffprobe = shutil.which("ffprobe")
	if ffprobe is None:
		raise RuntimeError("ffprobe not found on PATH")
	argv = [ffprobe, "-v", "error", "-show_format", "-show_streams",
		"-of", "json", mediafile]
	try:
		stdout = utils.run_command(argv)
	except subprocess.CalledProcessError as exc:
		stderr = (exc.stderr or b"").decode("utf-8", errors="replace").strip()
		raise RuntimeError(f"ffprobe failed on {mediafile}: {stderr}") from exc
	data = json.loads(stdout)
	return data

#===============================
def getDuration(mediafile: str) -> Decimal:
	data = getMediaInfo(mediafile)
	duration = data.get('format', {}).get('duration')
	if duration is None:
		for stream in data.get('streams', []):
			if stream.get('duration') is not None:
				duration = stream.get('duration')
				break
	if duration is None:
		raise RuntimeError(f"no duration reported for {mediafile}")
	return Decimal(str(duration))

#===============================
def getVideoDimensions(mediafile: str):
	data = getMediaInfo(mediafile)
	videotrack = None
	for stream in data.get('streams', []):
		if stream.get('codec_type') == 'video':
			videotrack = stream
			break
	if videotrack is None:
		return None
	width = int(videotrack['width'])
	height = int(videotrack['height'])
	return (width, height)

#===============================
def hasAudioStream(mediafile: str) -> bool:
	data = getMediaInfo(mediafile)
	for stream in data.get('streams', []):
		if stream.get('codec_type') == 'audio':
			return True
	return False

#===============================
def getImageDimensions(data: bytes):
	with PIL.Image.open(io.BytesIO(data)) as image:
		return image.size

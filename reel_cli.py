#!/usr/bin/env python3

import argparse
import sys
import yaml
from reellib.core import utils
from reellib.core.errors import ReelError
from reellib.core.project import ReelProject

#============================================

def parse_args():
	"""
	Parse command-line arguments.
	"""
	parser = argparse.ArgumentParser(description="Photo and clip reel maker")
	parser.add_argument('-y', '--yaml', dest='yamlfile', required=True,
		help='project yaml listing the photos, clips, audio and settings')
	parser.add_argument('-o', '--output', dest='output_file',
		help='override output file from yaml')
	parser.add_argument('-n', '--dry-run', dest='dry_run', action='store_true',
		help='validate only, do not render')
	parser.add_argument('-c', '--cache-dir', dest='cache_dir',
		help='directory for temporary render files')
	parser.add_argument('-k', '--keep-temp', dest='keep_temp',
		help='keep temporary render files', action='store_true')
	parser.add_argument('-K', '--no-keep-temp', dest='keep_temp',
		help='remove temporary render files', action='store_false')
	parser.add_argument('-p', '--dump-plan', dest='dump_plan', action='store_true',
		help='print the timeline, filter graph and audio plan')
	parser.add_argument('-t', '--timeout', dest='timeout', type=float,
		help='seconds before a single ffmpeg invocation is killed')
	parser.add_argument('-q', '--quiet', dest='quiet', action='store_true',
		help='only print errors')
	parser.set_defaults(keep_temp=False)
	args = parser.parse_args()
	return args

#============================================

def print_progress(percent: int) -> None:
	utils.log(f"progress: {percent:3d}%")

#============================================

def main():
	args = parse_args()
	utils.set_quiet_mode(args.quiet)
	try:
		project = ReelProject(args.yamlfile, output_override=args.output_file,
			dry_run=args.dry_run, keep_temp=args.keep_temp,
			cache_dir=args.cache_dir, timeout=args.timeout)
		if args.dump_plan:
			print(yaml.safe_dump(project.plan(), sort_keys=False))
			return
		project.run(on_progress=print_progress)
	except ReelError as exc:
		print(f"error: {exc}", file=sys.stderr)
		sys.exit(1)


if __name__ == '__main__':
	main()

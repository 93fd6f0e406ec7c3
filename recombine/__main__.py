import argparse
import asyncio
import logging
import typing

import recombine.config
import recombine.controller
import recombine.engine
import recombine.grid
import recombine.osc
import recombine.runner
import recombine.song


# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def build_runner (config: typing.Dict[str, typing.Any]) -> recombine.runner.Runner:

	"""
	Wire a demo song, an engine and the configured surfaces together.
	"""

	options = recombine.config.Options.from_dict(config.get("engine"))
	song = recombine.song.demo_song()
	engine = recombine.engine.Engine(song, options)

	engine.events.on(recombine.engine.GRID_CHANGED, lambda cells: logger.debug("Grid:\n" + recombine.grid.format_cells(cells)))

	controller = None
	controller_config = config.get("controller") or {}

	if controller_config.get("input"):
		controller = recombine.controller.GridController(
			engine,
			input_name=controller_config["input"],
			output_name=controller_config.get("output"),
			channel=controller_config.get("channel", 0),
		)

	osc_server = None
	osc_config = config.get("osc")

	if osc_config is not None:
		osc_server = recombine.osc.OscServer(
			engine,
			receive_port=osc_config.get("receive_port", 9000),
			send_port=osc_config.get("send_port", 9001),
			send_host=osc_config.get("send_host", "127.0.0.1"),
		)

	return recombine.runner.Runner(engine, controller=controller, osc_server=osc_server)


async def run (config: typing.Dict[str, typing.Any]) -> None:

	runner = build_runner(config)
	await runner.start()

	try:
		while True:
			await asyncio.sleep(1)
	finally:
		await runner.stop()


def main () -> None:

	"""
	Main entry point for the recombine application.
	"""

	parser = argparse.ArgumentParser(prog="recombine", description="Live recombination of song regions from a grid controller.")
	parser.add_argument("config", nargs="?", default="config.yaml", help="YAML configuration file (default: config.yaml)")
	args = parser.parse_args()

	logger.info("Recombine starting...")

	config = recombine.config.load_config(args.config)

	try:
		asyncio.run(run(config))
	except KeyboardInterrupt:
		logger.info("Stopping...")


if __name__ == "__main__":
	main()

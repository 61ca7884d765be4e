import os

from rich.pretty import pprint

from stratum import *
from stratum.diagnostics import setup_logging

verbose = boolean_option("verbose", False)
port = integer_option("port", 8080)
timeout = duration_option("timeout", "30s")

app = Dispatcher(environment=os.environ, prefix="DEMO", shell=True, fancy=True, colorful=True)
app.configure(GLOBAL).add_options(verbose)


@app.command(options=[port, timeout])
def serve(command, store, tail):
    pprint({option.name: store.find(option) for option in store.options()})


@app.command(parent="serve")
def status(command, store, tail):
    pprint(store.commands())


if __name__ == '__main__':
    setup_logging()
    app.main()

from drainq.cli import app

app(prog_name="drainq")

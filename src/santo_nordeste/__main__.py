from santo_nordeste.cli import cli

cli(prog_name="nordeste")

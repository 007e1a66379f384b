from beacon.main import run

run()

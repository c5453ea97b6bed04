from fileshare.main import run

run()

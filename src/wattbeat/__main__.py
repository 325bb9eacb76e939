from wattbeat.cli import main

main()

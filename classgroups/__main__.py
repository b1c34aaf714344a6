from classgroups.api import main

main()

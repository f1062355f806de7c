from osd_deploy import main

main()

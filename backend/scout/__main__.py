from scout.lifecycle import main

main()

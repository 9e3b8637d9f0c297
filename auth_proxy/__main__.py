from auth_proxy.server import main

main()

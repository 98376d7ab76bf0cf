from nginx_ip_defence.cli import main

main()

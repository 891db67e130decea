"""Reports the public IP address of the host."""